"""
Recommendation Engine Service for personalized course recommendations
"""
import logging
from typing import Dict, List, Optional

from learnhub.core.error_handling import InvalidInputError
from learnhub.core.redis_client import CacheManager, TRENDING_KEY_PREFIX
from learnhub.core.stores import BaseStore
from learnhub.models.course import Course, utc_now
from learnhub.models.recommendations import (
    ActivityType, Recommendation, RecommendationContext, RecommendationResult, UserProfile
)
from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.collaborative_filtering import CollaborativeFilteringAlgorithm
from learnhub.services.content_based_filtering import ContentBasedFilteringAlgorithm
from learnhub.services.pagination import validate_limit

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 30
MAX_SIMILAR = 20
COLLABORATIVE_WEIGHT = 12
POPULAR_COURSE_THRESHOLD = 5000


class RecommendationEngineService:
    """Personalized, trending and similar-course rankings"""

    def __init__(
        self,
        catalog: CourseCatalogService,
        profiles: BaseStore[UserProfile],
        cache: Optional[CacheManager] = None,
        trending_ttl: int = 300
    ):
        self.catalog = catalog
        self.profiles = profiles
        self.cache = cache
        self.trending_ttl = trending_ttl
        self.collaborative_filter = CollaborativeFilteringAlgorithm()
        self.content_based_filter = ContentBasedFilteringAlgorithm()

    async def get_recommendations(
        self,
        context: RecommendationContext,
        limit: int = 10
    ) -> RecommendationResult:
        """Score un-enrolled candidates and return the top `limit`"""
        validate_limit(limit, MAX_RECOMMENDATIONS)
        logger.info(
            f"Generating recommendations for user: {context.user_id}, limit: {limit}",
            extra={"user_id": context.user_id}
        )

        profile = await self.get_or_create_profile(context)
        courses = await self.catalog.list_courses()
        course_index = {course.id: course for course in courses}
        max_enrollment = await self.catalog.max_enrollment(courses)
        similar_users = self.collaborative_filter.find_similar_users(
            context.user_id, await self.profiles.list_all()
        )

        recommendations = []
        for course in self.content_based_filter.candidates(courses, context):
            score = self.calculate_recommendation_score(
                course, context, profile, course_index, max_enrollment, similar_users
            )
            recommendations.append(Recommendation(
                course_id=course.id,
                course=course,
                score=score,
                reason=self.generate_recommendation_reason(course, context)
            ))

        recommendations.sort(key=lambda rec: rec.score, reverse=True)
        top_recommendations = recommendations[:limit]

        logger.info(
            f"Generated {len(top_recommendations)} recommendations for user: {context.user_id}",
            extra={"user_id": context.user_id}
        )
        return RecommendationResult(recommendations=top_recommendations, generated_at=utc_now())

    def calculate_recommendation_score(
        self,
        course: Course,
        context: RecommendationContext,
        profile: UserProfile,
        course_index: Dict[str, Course],
        max_enrollment: int,
        similar_users: List[UserProfile]
    ) -> float:
        components = self.content_based_filter.score_components(
            course, context, profile, course_index, max_enrollment
        )
        components["collaborative"] = (
            self.collaborative_filter.score_with_neighbors(course.id, similar_users) * COLLABORATIVE_WEIGHT
        )
        return sum(components.values())

    def generate_recommendation_reason(self, course: Course, context: RecommendationContext) -> str:
        """First matching reason wins"""
        reasons = []

        if course.category.id in context.preferred_categories:
            reasons.append(f"Popular in {course.category.name} category you follow")

        if course.metadata.level in context.preferred_levels:
            reasons.append(f"Perfect {course.metadata.level.value} course for your level")

        reasons.append(f"Taught by highly-rated instructor {course.instructor.name}")

        if course.enrollment_count > POPULAR_COURSE_THRESHOLD:
            reasons.append(f"Popular course with {course.enrollment_count}+ students")

        if course.skills:
            reasons.append(f"Learn in-demand skills: {', '.join(course.skills[:2])}")

        return reasons[0] if reasons else "Based on your interests and learning preferences"

    async def get_or_create_profile(self, context: RecommendationContext) -> UserProfile:
        """Seed a profile from context once; stored history is never overwritten"""
        profile = await self.profiles.get(context.user_id)
        if profile is not None:
            return profile

        profile = UserProfile(
            user_id=context.user_id,
            enrolled_courses=set(context.enrolled_course_ids),
            browsed_courses={course_id: 1 for course_id in context.browsed_course_ids},
            ratings={entry.course_id: entry.rating for entry in context.ratings},
            preferred_categories={category_id: 1 for category_id in context.preferred_categories},
            last_active=utc_now()
        )
        await self.profiles.add(profile)
        logger.info(f"Created profile for user: {context.user_id}", extra={"user_id": context.user_id})
        return profile

    async def get_trending_courses(self, limit: int = 10) -> List[Course]:
        """Courses ranked by enrollment, rating and recency"""
        if limit < 1:
            raise InvalidInputError("limit must be a positive integer", {"limit": limit})

        cache_key = f"{TRENDING_KEY_PREFIX}:{limit}"
        if self.cache is not None:
            cached = await self.cache.get_cache(cache_key)
            if cached is not None:
                return [Course.model_validate(item) for item in cached]

        now = utc_now()
        courses = await self.catalog.list_courses()
        trending = sorted(
            courses,
            key=lambda course: self.content_based_filter.trending_score(course, now),
            reverse=True
        )[:limit]

        if self.cache is not None:
            await self.cache.set_cache(
                cache_key,
                [course.model_dump(mode="json") for course in trending],
                self.trending_ttl
            )

        logger.info(f"Retrieved {len(trending)} trending courses")
        return trending

    async def get_similar_courses(self, course_id: str, limit: int = 5) -> List[Recommendation]:
        """Published courses most similar to the given one"""
        validate_limit(limit, MAX_SIMILAR)
        base_course = await self.catalog.require_course(course_id)
        logger.info(f"Finding similar courses for: {course_id}", extra={"course_id": course_id})

        similar = [
            Recommendation(
                course_id=course.id,
                course=course,
                score=self.content_based_filter.similarity_score(base_course, course),
                reason=f"Similar to {base_course.title}"
            )
            for course in await self.catalog.list_courses()
            if course.id != course_id and course.metadata.is_published
        ]
        similar.sort(key=lambda rec: rec.score, reverse=True)

        top_similar = similar[:limit]
        logger.info(f"Found {len(top_similar)} similar courses")
        return top_similar

    async def record_user_activity(
        self,
        user_id: str,
        activity_type: ActivityType,
        course_id: str,
        rating: Optional[float] = None
    ) -> UserProfile:
        """Fold one activity event into the user's profile"""
        activity_type = ActivityType(activity_type)
        course = await self.catalog.require_course(course_id)

        profile = await self.profiles.get(user_id)
        is_new = profile is None
        if is_new:
            profile = UserProfile(user_id=user_id)

        if activity_type == ActivityType.VIEW:
            profile.browsed_courses[course_id] = profile.browsed_courses.get(course_id, 0) + 1
        elif activity_type in (ActivityType.ENROLL, ActivityType.COMPLETE):
            profile.enrolled_courses.add(course_id)
        elif activity_type == ActivityType.RATE and rating is not None:
            profile.ratings[course_id] = rating

        category_id = course.category.id
        profile.preferred_categories[category_id] = profile.preferred_categories.get(category_id, 0) + 1
        profile.last_active = utc_now()

        if is_new:
            await self.profiles.add(profile)
        else:
            await self.profiles.update(profile)

        logger.info(
            f"Recorded {activity_type.value} activity for user: {user_id}, course: {course_id}",
            extra={"user_id": user_id, "course_id": course_id}
        )
        return profile
