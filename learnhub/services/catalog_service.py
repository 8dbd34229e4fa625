"""
Course Catalog Service
Owns course records shared by search and recommendation
"""
from typing import List, Optional
import logging

from learnhub.core.error_handling import NotFoundError
from learnhub.core.redis_client import CacheManager
from learnhub.core.stores import BaseStore
from learnhub.models.course import Course, utc_now

logger = logging.getLogger(__name__)


class CourseCatalogService:
    """Explicit add/update/remove access to the course catalog"""

    def __init__(self, courses: BaseStore[Course], cache: Optional[CacheManager] = None):
        self.courses = courses
        self.cache = cache

    async def require_course(self, course_id: str) -> Course:
        course = await self.courses.get(course_id)
        if course is None:
            raise NotFoundError(f"Course not found: {course_id}", {"course_id": course_id})
        return course

    async def list_courses(self) -> List[Course]:
        return await self.courses.list_all()

    async def add_course(self, course: Course) -> Course:
        await self.courses.add(course)
        await self._invalidate()
        logger.info(f"Course added to catalog: {course.id}", extra={"course_id": course.id})
        return course

    async def update_course(self, course: Course) -> Course:
        if await self.courses.get(course.id) is None:
            raise NotFoundError(f"Course not found: {course.id}", {"course_id": course.id})
        course.metadata.updated_at = utc_now()
        await self.courses.update(course)
        await self._invalidate()
        logger.info(f"Course updated in catalog: {course.id}", extra={"course_id": course.id})
        return course

    async def remove_course(self, course_id: str) -> None:
        if not await self.courses.remove(course_id):
            raise NotFoundError(f"Course not found: {course_id}", {"course_id": course_id})
        await self._invalidate()
        logger.info(f"Course removed from catalog: {course_id}", extra={"course_id": course_id})

    async def max_enrollment(self, courses: Optional[List[Course]] = None) -> int:
        """Highest enrollment count across the catalog (0 when empty)"""
        if courses is None:
            courses = await self.courses.list_all()
        return max((course.enrollment_count for course in courses), default=0)

    async def _invalidate(self):
        if self.cache is not None:
            await self.cache.invalidate_trending()
