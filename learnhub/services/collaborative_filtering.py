"""
Collaborative Filtering Algorithm for Recommendations
"""
import logging
from typing import Iterable, List

from learnhub.models.recommendations import UserProfile

logger = logging.getLogger(__name__)


class CollaborativeFilteringAlgorithm:
    """Shared-rated-course neighbor lookup over stored profiles.

    Any other user who rated at least one course this user also rated counts
    as a neighbor. The score for a course is the plain average of the
    neighbors' ratings for it, with 0 standing in for neighbors who never
    rated it. Neighbors are not weighted by similarity.
    """

    def find_similar_users(self, user_id: str, profiles: Iterable[UserProfile]) -> List[UserProfile]:
        """Profiles of other users sharing at least one rated course with user_id"""
        profiles = list(profiles)
        user_profile = next((p for p in profiles if p.user_id == user_id), None)
        if user_profile is None or not user_profile.ratings:
            return []

        user_rated = set(user_profile.ratings)
        return [
            other for other in profiles
            if other.user_id != user_id and user_rated & set(other.ratings)
        ]

    def score(self, user_id: str, course_id: str, profiles: Iterable[UserProfile]) -> float:
        return self.score_with_neighbors(course_id, self.find_similar_users(user_id, profiles))

    def score_with_neighbors(self, course_id: str, similar_users: List[UserProfile]) -> float:
        """Average neighbor rating for a course, neighbors resolved once per request"""
        if not similar_users:
            return 0.0

        total = sum(other.ratings.get(course_id, 0.0) for other in similar_users)
        return total / len(similar_users)
