"""
Search Service
Handles course search, filtering, relevance ranking and search analytics
"""
import logging
import math
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from learnhub.core.error_handling import InvalidInputError, NotFoundError
from learnhub.core.redis_client import CacheManager, POPULAR_SEARCHES_KEY_PREFIX
from learnhub.core.stores import BaseStore
from learnhub.models.course import (
    Course, CourseCategory, PopularSearch, SearchAnalytics, SearchFilter,
    SearchResult, SortOption, utc_now
)
from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.pagination import paginate, validate_limit

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 10
RECENT_COURSE_DAYS = 30


def normalize_query(query: Optional[str]) -> str:
    return (query or "").lower().strip()


class SearchService:
    """Full-text filter, relevance ranking and pagination over the catalog"""

    def __init__(
        self,
        catalog: CourseCatalogService,
        categories: BaseStore[CourseCategory],
        analytics: BaseStore[SearchAnalytics],
        cache: Optional[CacheManager] = None,
        popular_searches_ttl: int = 120
    ):
        self.catalog = catalog
        self.categories = categories
        self.analytics = analytics
        self.cache = cache
        self.popular_searches_ttl = popular_searches_ttl

    async def search_courses(
        self,
        query: str,
        filters: Union[SearchFilter, Dict[str, Any], None],
        session_id: str,
        user_id: Optional[str] = None
    ) -> SearchResult:
        """Search courses with query and filters, sorted and paginated"""
        filters = self._coerce_filters(filters)
        normalized_query = normalize_query(query)
        logger.info(
            f"Search initiated - query: {normalized_query!r}, sort: {filters.sort_by.value}",
            extra={"session_id": session_id, "user_id": user_id}
        )

        results = await self.catalog.list_courses()

        if normalized_query:
            results = self.apply_text_search(results, normalized_query)

        results = self.apply_filters(results, filters)
        results = self.rank_by_relevance(results, normalized_query)
        results = self.sort_results(results, filters.sort_by)

        page_courses, has_more = paginate(results, filters.page, filters.limit)
        total = len(results)

        await self._record_search_analytics(
            query=normalized_query,
            filters=filters,
            result_count=total,
            session_id=session_id,
            user_id=user_id
        )

        logger.info(f"Search completed - found {total} courses, returning page {filters.page}")

        return SearchResult(
            courses=page_courses,
            total=total,
            page=filters.page,
            limit=filters.limit,
            has_more=has_more
        )

    def _coerce_filters(self, filters: Union[SearchFilter, Dict[str, Any], None]) -> SearchFilter:
        if filters is None:
            return SearchFilter()
        if isinstance(filters, SearchFilter):
            return filters
        try:
            return SearchFilter.model_validate(filters)
        except ValidationError as e:
            raise InvalidInputError(
                "Invalid search filters",
                {"errors": [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]}
            ) from e

    def apply_text_search(self, courses: List[Course], query: str) -> List[Course]:
        """Keep courses containing the phrase, or every word of it"""
        query_words = query.split()
        matched = []
        for course in courses:
            searchable_text = course.searchable_text()
            if query in searchable_text or all(word in searchable_text for word in query_words):
                matched.append(course)
        return matched

    def apply_filters(self, courses: List[Course], filters: SearchFilter) -> List[Course]:
        """Apply category, level, price, rating, language, instructor, duration and tag filters"""
        return [course for course in courses if self._matches_filters(course, filters)]

    def _matches_filters(self, course: Course, filters: SearchFilter) -> bool:
        if filters.category and course.category.id != filters.category:
            return False

        if filters.level and course.metadata.level != filters.level:
            return False

        if filters.price_range:
            price = course.price or 0
            if price < filters.price_range.min or price > filters.price_range.max:
                return False

        if filters.rating is not None and course.rating < filters.rating:
            return False

        if filters.language and course.metadata.language != filters.language:
            return False

        if filters.instructor and course.instructor.id != filters.instructor:
            return False

        if filters.duration_range:
            duration = course.metadata.duration
            if duration < filters.duration_range.min or duration > filters.duration_range.max:
                return False

        if filters.tags and not any(tag in course.tags for tag in filters.tags):
            return False

        return True

    def rank_by_relevance(
        self,
        courses: List[Course],
        query: str,
        now: Optional[datetime] = None
    ) -> List[Course]:
        """Attach a relevance score to every course"""
        now = now or utc_now()
        for course in courses:
            course.search_score = self.calculate_relevance_score(course, query, now)
        return courses

    def calculate_relevance_score(self, course: Course, query: str, now: datetime) -> float:
        score = 0.0

        if query in course.title.lower():
            score += 100

        if query in course.description.lower():
            score += 50

        if query:
            matching_tags = sum(1 for tag in course.tags if query in tag.lower())
            score += matching_tags * 25

        score += math.log(course.enrollment_count + 1) * 10
        score += course.rating * 5

        if course.age_in_days(now) < RECENT_COURSE_DAYS:
            score += 20

        return score

    def sort_results(self, courses: List[Course], sort_by: SortOption) -> List[Course]:
        """Stable sort by the requested criterion"""
        if sort_by == SortOption.RATING:
            return sorted(courses, key=lambda c: c.rating, reverse=True)
        if sort_by == SortOption.PRICE_LOW:
            return sorted(courses, key=lambda c: c.price or 0)
        if sort_by == SortOption.PRICE_HIGH:
            return sorted(courses, key=lambda c: c.price or 0, reverse=True)
        if sort_by == SortOption.NEWEST:
            now = utc_now()
            return sorted(courses, key=lambda c: c.age_in_days(now))
        if sort_by == SortOption.POPULAR:
            return sorted(courses, key=lambda c: c.enrollment_count, reverse=True)
        return sorted(courses, key=lambda c: c.search_score or 0, reverse=True)

    async def _record_search_analytics(
        self,
        query: str,
        filters: SearchFilter,
        result_count: int,
        session_id: str,
        user_id: Optional[str]
    ) -> None:
        """Append one analytics record; failures never reach the caller"""
        try:
            record = SearchAnalytics(
                id=f"analytics_{uuid.uuid4().hex}",
                query=query,
                filters=filters.model_dump(mode="json", exclude_none=True),
                result_count=result_count,
                timestamp=utc_now(),
                user_id=user_id,
                session_id=session_id
            )
            await self.analytics.add(record)
            if self.cache is not None:
                await self.cache.invalidate_popular_searches()
            logger.info(f"Search analytics recorded: {record.id}", extra={"session_id": session_id})
        except Exception:
            logger.exception("Error recording search analytics")

    async def get_search_suggestions(self, query: str, limit: int = 5) -> List[str]:
        """Matching course titles, then tags, then category names"""
        validate_limit(limit, MAX_SUGGESTIONS)
        normalized_query = normalize_query(query)
        suggestions: Dict[str, None] = {}

        courses = await self.catalog.list_courses()

        for course in courses:
            if normalized_query in course.title.lower():
                suggestions.setdefault(course.title)

        for course in courses:
            for tag in course.tags:
                if normalized_query in tag.lower():
                    suggestions.setdefault(tag)

        for category in await self.categories.list_all():
            if normalized_query in category.name.lower():
                suggestions.setdefault(category.name)

        result = list(suggestions)[:limit]
        logger.info(f"Generated {len(result)} suggestions for query: {query}")
        return result

    async def get_popular_searches(self, limit: int = 10) -> List[PopularSearch]:
        """Most frequent normalized queries"""
        if limit < 1:
            raise InvalidInputError("limit must be a positive integer", {"limit": limit})

        cache_key = f"{POPULAR_SEARCHES_KEY_PREFIX}:{limit}"
        if self.cache is not None:
            cached = await self.cache.get_cache(cache_key)
            if cached is not None:
                return [PopularSearch.model_validate(item) for item in cached]

        counts = Counter(record.query for record in await self.analytics.list_all())
        popular = [PopularSearch(query=q, count=c) for q, c in counts.most_common(limit)]

        if self.cache is not None:
            await self.cache.set_cache(
                cache_key,
                [item.model_dump(mode="json") for item in popular],
                self.popular_searches_ttl
            )

        logger.info(f"Retrieved {len(popular)} popular searches")
        return popular

    async def get_search_analytics(self, query: str) -> List[SearchAnalytics]:
        normalized_query = normalize_query(query)
        records = [r for r in await self.analytics.list_all() if r.query == normalized_query]
        logger.info(f"Retrieved {len(records)} analytics records for query: {query}")
        return records

    async def get_categories(self) -> List[CourseCategory]:
        categories = await self.categories.list_all()
        logger.info(f"Retrieved {len(categories)} categories")
        return categories

    async def get_category_tree(self) -> List[CourseCategory]:
        """Root categories only"""
        return [c for c in await self.categories.list_all() if not c.parent_category]

    async def upsert_category(self, category: CourseCategory) -> CourseCategory:
        if await self.categories.get(category.id) is None:
            await self.categories.add(category)
        else:
            await self.categories.update(category)
        logger.info(f"Category upserted: {category.id}")
        return category

    async def delete_category(self, category_id: str) -> None:
        if not await self.categories.remove(category_id):
            raise NotFoundError(f"Category not found: {category_id}", {"category_id": category_id})
        logger.info(f"Category deleted: {category_id}")
