"""
MongoDB database connection and Mongo-backed repositories
"""
from typing import List, Optional, Type

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING
import logging

from learnhub.core.config import settings
from learnhub.core.stores import BaseStore, ModelT, Repositories
from learnhub.models.course import Course, CourseCategory, SearchAnalytics
from learnhub.models.notifications import Notification, NotificationPreferences
from learnhub.models.quiz import Quiz, QuizResult, QuizSubmission
from learnhub.models.recommendations import UserProfile

logger = logging.getLogger(__name__)

# Global database client
client: Optional[AsyncIOMotorClient] = None


async def init_database() -> AsyncIOMotorDatabase:
    """Initialize MongoDB connection and create indexes"""
    global client

    try:
        client = AsyncIOMotorClient(settings.MONGODB_URL)
        database = client[settings.MONGODB_DATABASE]

        await client.admin.command('ping')
        logger.info("Successfully connected to MongoDB")

        await create_indexes(database)

    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        raise

    return database


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes for the lookups the stores perform"""

    await db.courses.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("category.id", ASCENDING)]),
        IndexModel([("metadata.is_published", ASCENDING)]),
    ])
    await db.categories.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("parent_category", ASCENDING)]),
    ])
    await db.search_analytics.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("query", ASCENDING)]),
        IndexModel([("timestamp", DESCENDING)]),
    ])
    await db.user_profiles.create_indexes([
        IndexModel([("user_id", ASCENDING)], unique=True),
    ])
    await db.quizzes.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("course_id", ASCENDING)]),
    ])
    await db.quiz_submissions.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("quiz_id", ASCENDING), ("user_id", ASCENDING)]),
    ])
    await db.quiz_results.create_indexes([
        IndexModel([("submission_id", ASCENDING)], unique=True),
        IndexModel([("quiz_id", ASCENDING), ("graded_at", DESCENDING)]),
    ])
    await db.notifications.create_indexes([
        IndexModel([("id", ASCENDING)], unique=True),
        IndexModel([("user_id", ASCENDING), ("timestamp", DESCENDING)]),
    ])
    await db.notification_preferences.create_indexes([
        IndexModel([("user_id", ASCENDING)], unique=True),
    ])

    logger.info("Database indexes created successfully")


async def close_database():
    """Close database connection"""
    global client
    if client:
        client.close()
        logger.info("MongoDB connection closed")


class MongoStore(BaseStore[ModelT]):
    """Store backed by a single MongoDB collection"""

    def __init__(self, collection: AsyncIOMotorCollection, model_cls: Type[ModelT], key_field: str = "id"):
        super().__init__(model_cls, key_field)
        self.collection = collection

    def _to_document(self, item: ModelT) -> dict:
        return item.model_dump(mode="json")

    def _from_document(self, doc: dict) -> ModelT:
        doc.pop("_id", None)
        return self.model_cls.model_validate(doc)

    async def get(self, item_id: str) -> Optional[ModelT]:
        doc = await self.collection.find_one({self.key_field: item_id})
        return self._from_document(doc) if doc else None

    async def list_all(self) -> List[ModelT]:
        # ObjectIds grow monotonically, so _id order is insertion order
        cursor = self.collection.find({}).sort("_id", ASCENDING)
        return [self._from_document(doc) async for doc in cursor]

    async def add(self, item: ModelT) -> ModelT:
        await self.collection.replace_one(
            {self.key_field: self.key_of(item)},
            self._to_document(item),
            upsert=True
        )
        return item

    async def update(self, item: ModelT) -> ModelT:
        await self.collection.replace_one(
            {self.key_field: self.key_of(item)},
            self._to_document(item),
            upsert=True
        )
        return item

    async def remove(self, item_id: str) -> bool:
        result = await self.collection.delete_one({self.key_field: item_id})
        return result.deleted_count > 0

    async def count(self) -> int:
        return await self.collection.count_documents({})


def build_mongo_repositories(db: AsyncIOMotorDatabase) -> Repositories:
    """Repositories persisted in MongoDB"""
    return Repositories(
        courses=MongoStore(db.courses, Course),
        categories=MongoStore(db.categories, CourseCategory),
        search_analytics=MongoStore(db.search_analytics, SearchAnalytics),
        profiles=MongoStore(db.user_profiles, UserProfile, key_field="user_id"),
        quizzes=MongoStore(db.quizzes, Quiz),
        submissions=MongoStore(db.quiz_submissions, QuizSubmission),
        results=MongoStore(db.quiz_results, QuizResult, key_field="submission_id"),
        notifications=MongoStore(db.notifications, Notification),
        notification_preferences=MongoStore(db.notification_preferences, NotificationPreferences, key_field="user_id"),
    )
