"""
Repository abstraction for catalog, profile, analytics and quiz state
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from learnhub.models.course import Course, CourseCategory, SearchAnalytics
from learnhub.models.notifications import Notification, NotificationPreferences
from learnhub.models.quiz import Quiz, QuizResult, QuizSubmission
from learnhub.models.recommendations import UserProfile

ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseStore(ABC, Generic[ModelT]):
    """CRUD collaborator consumed by the engines"""

    def __init__(self, model_cls: Type[ModelT], key_field: str = "id"):
        self.model_cls = model_cls
        self.key_field = key_field

    def key_of(self, item: ModelT) -> str:
        return getattr(item, self.key_field)

    @abstractmethod
    async def get(self, item_id: str) -> Optional[ModelT]:
        ...

    @abstractmethod
    async def list_all(self) -> List[ModelT]:
        """All items in insertion order"""

    @abstractmethod
    async def add(self, item: ModelT) -> ModelT:
        ...

    @abstractmethod
    async def update(self, item: ModelT) -> ModelT:
        ...

    @abstractmethod
    async def remove(self, item_id: str) -> bool:
        ...

    async def count(self) -> int:
        return len(await self.list_all())


class InMemoryStore(BaseStore[ModelT]):
    """Dict-backed store; items are copied in and out"""

    def __init__(self, model_cls: Type[ModelT], key_field: str = "id"):
        super().__init__(model_cls, key_field)
        self._items: Dict[str, ModelT] = {}

    async def get(self, item_id: str) -> Optional[ModelT]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item is not None else None

    async def list_all(self) -> List[ModelT]:
        return [item.model_copy(deep=True) for item in self._items.values()]

    async def add(self, item: ModelT) -> ModelT:
        self._items[self.key_of(item)] = item.model_copy(deep=True)
        return item

    async def update(self, item: ModelT) -> ModelT:
        # Existing keys keep their original position
        self._items[self.key_of(item)] = item.model_copy(deep=True)
        return item

    async def remove(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    async def count(self) -> int:
        return len(self._items)


@dataclass
class Repositories:
    """One store per entity, injected into the services"""
    courses: BaseStore[Course]
    categories: BaseStore[CourseCategory]
    search_analytics: BaseStore[SearchAnalytics]
    profiles: BaseStore[UserProfile]
    quizzes: BaseStore[Quiz]
    submissions: BaseStore[QuizSubmission]
    results: BaseStore[QuizResult]
    notifications: BaseStore[Notification]
    notification_preferences: BaseStore[NotificationPreferences]


def build_memory_repositories() -> Repositories:
    """In-process repositories for development and tests"""
    return Repositories(
        courses=InMemoryStore(Course),
        categories=InMemoryStore(CourseCategory),
        search_analytics=InMemoryStore(SearchAnalytics),
        profiles=InMemoryStore(UserProfile, key_field="user_id"),
        quizzes=InMemoryStore(Quiz),
        submissions=InMemoryStore(QuizSubmission),
        # Results are keyed by submission so a regrade replaces the previous result
        results=InMemoryStore(QuizResult, key_field="submission_id"),
        notifications=InMemoryStore(Notification),
        notification_preferences=InMemoryStore(NotificationPreferences, key_field="user_id"),
    )
