"""
Recommendation system data models
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Set
from datetime import datetime
from enum import Enum

from learnhub.models.course import Course, CourseLevel, utc_now


class ActivityType(str, Enum):
    """User activity kinds that feed the behavioral profile"""
    VIEW = "view"
    ENROLL = "enroll"
    RATE = "rate"
    COMPLETE = "complete"


class CourseRatingEntry(BaseModel):
    """A rating supplied in a recommendation context"""
    course_id: str
    rating: float = Field(..., ge=1.0, le=5.0)


class RecommendationContext(BaseModel):
    """Caller-supplied context for personalized recommendations"""
    user_id: str = Field(..., min_length=1)
    enrolled_course_ids: List[str] = Field(default_factory=list)
    browsed_course_ids: List[str] = Field(default_factory=list)
    preferred_categories: List[str] = Field(default_factory=list)
    preferred_levels: List[CourseLevel] = Field(default_factory=list)
    last_search_query: Optional[str] = None
    ratings: List[CourseRatingEntry] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Accumulated behavioral state for one user"""
    user_id: str
    enrolled_courses: Set[str] = Field(default_factory=set)
    browsed_courses: Dict[str, int] = Field(default_factory=dict, description="course id -> view count")
    ratings: Dict[str, float] = Field(default_factory=dict, description="course id -> rating (1-5)")
    preferred_categories: Dict[str, float] = Field(default_factory=dict, description="category id -> weight")
    last_active: datetime = Field(default_factory=utc_now)


class Recommendation(BaseModel):
    """Individual scored recommendation"""
    course_id: str
    course: Course
    score: float
    reason: str


class RecommendationResult(BaseModel):
    """Ranked recommendations for a user"""
    recommendations: List[Recommendation]
    generated_at: datetime = Field(default_factory=utc_now)


class ActivityRequest(BaseModel):
    """Recorded user activity"""
    user_id: str = Field(..., min_length=1)
    activity_type: ActivityType
    course_id: str = Field(..., min_length=1)
    rating: Optional[float] = Field(None, ge=1.0, le=5.0)


class RecommendationRequest(BaseModel):
    """Request body for personalized recommendations"""
    context: RecommendationContext
    limit: int = Field(10, ge=1, le=30)
