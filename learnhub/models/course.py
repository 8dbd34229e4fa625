"""
Course catalog and search data models
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum


class CourseLevel(str, Enum):
    """Course difficulty levels"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SortOption(str, Enum):
    """Supported result orderings for course search"""
    RELEVANCE = "relevance"
    RATING = "rating"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    NEWEST = "newest"
    POPULAR = "popular"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Instructor(BaseModel):
    """Course instructor"""
    id: str
    name: str
    bio: str = ""
    avatar: str = ""
    rating: float = Field(0.0, ge=0.0, le=5.0)


class CourseCategory(BaseModel):
    """Course category; parent_category is a lookup reference, not ownership"""
    id: str
    name: str
    description: str = ""
    parent_category: Optional[str] = None


class CourseRating(BaseModel):
    """Individual course review"""
    user_id: str
    rating: float = Field(..., ge=1.0, le=5.0)
    review: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class Lesson(BaseModel):
    """Single lesson inside a curriculum module"""
    id: str
    title: str
    description: str = ""
    duration: int = Field(0, description="Duration in minutes")
    video_url: Optional[str] = None
    resource_urls: List[str] = Field(default_factory=list)
    order: int = 0


class CurriculumModule(BaseModel):
    """Curriculum module grouping lessons"""
    id: str
    title: str
    description: str = ""
    lessons: List[Lesson] = Field(default_factory=list)
    duration: float = Field(0.0, description="Duration in hours")


class CourseMetadata(BaseModel):
    """Publishing and scheduling metadata for a course"""
    level: CourseLevel = CourseLevel.BEGINNER
    duration: float = Field(0.0, ge=0.0, description="Duration in hours")
    language: str = "en"
    subtitle: str = ""
    prerequisite_courses: List[str] = Field(default_factory=list, description="IDs of prerequisite courses")
    max_students: int = Field(10000, ge=0)
    is_published: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Course(BaseModel):
    """Course record held by the catalog"""
    id: str
    title: str
    description: str = ""
    short_description: str = ""
    category: CourseCategory
    subcategories: List[CourseCategory] = Field(default_factory=list)
    instructor: Instructor
    price: Optional[float] = Field(None, ge=0.0)
    original_price: Optional[float] = None
    discount: Optional[float] = None
    rating: float = Field(0.0, ge=0.0, le=5.0, description="Average rating")
    rating_count: int = Field(0, ge=0)
    reviews: List[CourseRating] = Field(default_factory=list)
    enrollment_count: int = Field(0, ge=0)
    thumbnail: str = ""
    cover_image: str = ""
    tags: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    objectives: List[str] = Field(default_factory=list)
    curriculum: List[CurriculumModule] = Field(default_factory=list)
    metadata: CourseMetadata = Field(default_factory=CourseMetadata)
    search_score: Optional[float] = Field(None, description="Relevance score from the last search")

    def age_in_days(self, now: Optional[datetime] = None) -> float:
        """Days elapsed since the course was created"""
        now = now or utc_now()
        created_at = self.metadata.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return (now - created_at).total_seconds() / 86400

    def searchable_text(self) -> str:
        """Lower-cased concatenation of every field the text search inspects"""
        parts = [
            self.title,
            self.description,
            self.short_description,
            " ".join(self.tags),
            " ".join(self.skills),
            self.instructor.name,
            self.category.name,
        ]
        return "\n".join(part.lower() for part in parts)


class NumericRange(BaseModel):
    """Inclusive numeric range"""
    min: float
    max: float

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError(f"range minimum {self.min} exceeds maximum {self.max}")
        return self


class SearchFilter(BaseModel):
    """Optional constraints for a course search"""
    category: Optional[str] = None
    level: Optional[CourseLevel] = None
    price_range: Optional[NumericRange] = None
    rating: Optional[float] = Field(None, ge=0.0, le=5.0, description="Minimum rating")
    language: Optional[str] = None
    instructor: Optional[str] = None
    duration_range: Optional[NumericRange] = None
    tags: List[str] = Field(default_factory=list)
    sort_by: SortOption = SortOption.RELEVANCE
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=50)


class SearchResult(BaseModel):
    """Paginated search response"""
    courses: List[Course]
    total: int
    page: int
    limit: int
    has_more: bool


class SearchAnalytics(BaseModel):
    """Append-only record of a search invocation"""
    id: str
    query: str
    filters: Dict[str, Any] = Field(default_factory=dict)
    result_count: int
    timestamp: datetime = Field(default_factory=utc_now)
    user_id: Optional[str] = None
    session_id: str
    results_clicked: List[str] = Field(default_factory=list)


class PopularSearch(BaseModel):
    """Aggregated query frequency"""
    query: str
    count: int


class SearchRequest(BaseModel):
    """Search request body"""
    query: str = ""
    filters: SearchFilter = Field(default_factory=SearchFilter)
    session_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
