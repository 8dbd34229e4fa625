"""
Pytest configuration and fixtures
"""
import pytest
from datetime import timedelta
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, MagicMock

from learnhub.core.stores import build_memory_repositories
from learnhub.models.course import (
    Course, CourseCategory, CourseLevel, CourseMetadata, Instructor, utc_now
)
from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.grading_service import GradingService
from learnhub.services.notification_service import NotificationService
from learnhub.services.quiz_service import QuizService
from learnhub.services.recommendation_engine_service import RecommendationEngineService
from learnhub.services.search_service import SearchService


def make_course(
    course_id: str,
    title: str = "Untitled Course",
    description: str = "",
    category_id: str = "prog",
    category_name: str = "Programming",
    level: CourseLevel = CourseLevel.BEGINNER,
    rating: float = 0.0,
    rating_count: int = 0,
    enrollment_count: int = 0,
    price=None,
    tags=None,
    skills=None,
    instructor_id: str = "inst-1",
    instructor_name: str = "Ada Lovelace",
    language: str = "en",
    duration: float = 10.0,
    prerequisites=None,
    max_students: int = 10000,
    is_published: bool = True,
    age_days: float = 365
) -> Course:
    """Course record with sensible defaults; age_days sets created_at relative to now"""
    created_at = utc_now() - timedelta(days=age_days)
    return Course(
        id=course_id,
        title=title,
        description=description,
        category=CourseCategory(id=category_id, name=category_name),
        instructor=Instructor(id=instructor_id, name=instructor_name, rating=4.8),
        price=price,
        rating=rating,
        rating_count=rating_count,
        enrollment_count=enrollment_count,
        tags=tags or [],
        skills=skills or [],
        metadata=CourseMetadata(
            level=level,
            duration=duration,
            language=language,
            prerequisite_courses=prerequisites or [],
            max_students=max_students,
            is_published=is_published,
            created_at=created_at,
            updated_at=created_at
        )
    )


@pytest.fixture
def course_factory():
    return make_course


@pytest.fixture
def repositories():
    """Fresh in-memory repositories per test"""
    return build_memory_repositories()


@pytest.fixture
def mock_cache():
    """Cache manager double that always misses"""
    cache = MagicMock()
    cache.get_cache = AsyncMock(return_value=None)
    cache.set_cache = AsyncMock(return_value=True)
    cache.invalidate_trending = AsyncMock(return_value=0)
    cache.invalidate_popular_searches = AsyncMock(return_value=0)
    return cache


@pytest.fixture
def catalog(repositories):
    return CourseCatalogService(repositories.courses)


@pytest.fixture
def search_service(catalog, repositories):
    return SearchService(catalog, repositories.categories, repositories.search_analytics)


@pytest.fixture
def recommendation_service(catalog, repositories):
    return RecommendationEngineService(catalog, repositories.profiles)


@pytest.fixture
def quiz_service(repositories):
    return QuizService(repositories.quizzes, repositories.submissions, repositories.results)


@pytest.fixture
def grading_service(quiz_service):
    return GradingService(quiz_service)


@pytest.fixture
def notification_service(repositories):
    return NotificationService(repositories.notifications, repositories.notification_preferences)


@pytest.fixture
def test_app(repositories):
    from learnhub.main import create_app
    return create_app(repositories=repositories)


@pytest.fixture
async def client(test_app):
    """Create test client"""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac
