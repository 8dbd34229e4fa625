"""
Content-Based Filtering Algorithm for Recommendations
"""
import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Mapping

from learnhub.models.course import Course
from learnhub.models.recommendations import RecommendationContext, UserProfile

logger = logging.getLogger(__name__)

CATEGORY_WEIGHT = 20
PREFERRED_LEVEL_BONUS = 30
RATING_WEIGHT = 10
RATING_COUNT_WEIGHT = 5
POPULARITY_WEIGHT = 8
SKILL_MATCH_WEIGHT = 15
NOVELTY_WEIGHT = 5
PREREQUISITE_WEIGHT = 25


class ContentBasedFilteringAlgorithm:
    """Course-attribute scoring against a user's profile and context"""

    def score_components(
        self,
        course: Course,
        context: RecommendationContext,
        profile: UserProfile,
        rated_courses: Mapping[str, Course],
        max_enrollment: int
    ) -> Dict[str, float]:
        """Every content, quality and popularity term for one candidate"""
        return {
            "category": profile.preferred_categories.get(course.category.id, 0) * CATEGORY_WEIGHT,
            "level": PREFERRED_LEVEL_BONUS if course.metadata.level in context.preferred_levels else 0.0,
            "rating": course.rating * RATING_WEIGHT,
            "rating_count": math.log(course.rating_count + 1) * RATING_COUNT_WEIGHT,
            "popularity": math.log(course.enrollment_count + 1) * POPULARITY_WEIGHT,
            "skills": self.skill_match_count(course, profile, rated_courses) * SKILL_MATCH_WEIGHT,
            "novelty": self.novelty(course, max_enrollment) * NOVELTY_WEIGHT,
            "prerequisites": self.prerequisite_match_count(course, context.enrolled_course_ids) * PREREQUISITE_WEIGHT,
        }

    def skill_match_count(
        self,
        course: Course,
        profile: UserProfile,
        rated_courses: Mapping[str, Course]
    ) -> int:
        """Skills of the course that appear in any course the user has rated"""
        rated_skills = set()
        for course_id in profile.ratings:
            rated = rated_courses.get(course_id)
            if rated is not None:
                rated_skills.update(rated.skills)
        return sum(1 for skill in course.skills if skill in rated_skills)

    def novelty(self, course: Course, max_enrollment: int) -> float:
        return 1 - course.enrollment_count / (max_enrollment + 1)

    def prerequisite_match_count(self, course: Course, enrolled_course_ids: Iterable[str]) -> int:
        enrolled = set(enrolled_course_ids)
        return sum(1 for prereq_id in course.metadata.prerequisite_courses if prereq_id in enrolled)

    def similarity_score(self, base: Course, other: Course) -> float:
        """How closely another course resembles the base course"""
        score = 0.0

        if base.category.id == other.category.id:
            score += 40

        if base.metadata.level == other.metadata.level:
            score += 20

        if base.instructor.id == other.instructor.id:
            score += 30

        score += sum(1 for tag in base.tags if tag in other.tags) * 5
        score += sum(1 for skill in base.skills if skill in other.skills) * 8

        if base.metadata.language == other.metadata.language:
            score += 10

        if abs(base.rating - other.rating) < 0.5:
            score += 15

        return score

    def trending_score(self, course: Course, now: datetime) -> float:
        score = math.log(course.enrollment_count + 1) * 10
        score += course.rating * 8

        age_in_days = course.age_in_days(now)
        if age_in_days < 30:
            score += 50
        elif age_in_days < 90:
            score += 20

        return score

    def candidates(self, courses: List[Course], context: RecommendationContext) -> List[Course]:
        """Published, open courses the user has neither enrolled in nor browsed"""
        exclude_ids = set(context.enrolled_course_ids) | set(context.browsed_course_ids)
        return [
            course for course in courses
            if course.id not in exclude_ids
            and course.metadata.is_published
            and course.metadata.max_students > course.enrollment_count
        ]
