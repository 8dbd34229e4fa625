"""
Tests for personalized, trending and similar-course recommendations
"""
import math
import pytest
from unittest.mock import AsyncMock

from conftest import make_course
from learnhub.core.error_handling import InvalidInputError, NotFoundError
from learnhub.models.course import CourseLevel
from learnhub.models.recommendations import (
    ActivityType, CourseRatingEntry, RecommendationContext, UserProfile
)
from learnhub.services.collaborative_filtering import CollaborativeFilteringAlgorithm
from learnhub.services.content_based_filtering import ContentBasedFilteringAlgorithm
from learnhub.services.recommendation_engine_service import RecommendationEngineService


async def seed(catalog, *courses):
    for course in courses:
        await catalog.add_course(course)


class TestPersonalizedRecommendations:

    @pytest.mark.asyncio
    async def test_single_course_reference_score(self, catalog, recommendation_service):
        await seed(catalog, make_course(
            "C1", category_id="prog", level=CourseLevel.BEGINNER, rating=4.5, enrollment_count=100
        ))
        context = RecommendationContext(
            user_id="u1",
            preferred_categories=["prog"],
            preferred_levels=[CourseLevel.BEGINNER]
        )

        result = await recommendation_service.get_recommendations(context, 10)

        expected = (
            20 + 30 + 10 * 4.5 + 5 * math.log(1) + 8 * math.log(101) + 5 * (1 - 100 / 101)
        )
        assert len(result.recommendations) == 1
        assert result.recommendations[0].course_id == "C1"
        assert result.recommendations[0].score == pytest.approx(expected)
        assert result.recommendations[0].reason == "Popular in Programming category you follow"

    @pytest.mark.asyncio
    async def test_candidates_exclude_seen_unpublished_and_full(self, catalog, recommendation_service):
        await seed(
            catalog,
            make_course("enrolled"),
            make_course("browsed"),
            make_course("draft", is_published=False),
            make_course("full", enrollment_count=50, max_students=50),
            make_course("open"),
        )
        context = RecommendationContext(
            user_id="u1", enrolled_course_ids=["enrolled"], browsed_course_ids=["browsed"]
        )

        result = await recommendation_service.get_recommendations(context)

        assert [r.course_id for r in result.recommendations] == ["open"]

    @pytest.mark.asyncio
    async def test_ranked_descending_and_limited(self, catalog, recommendation_service):
        await seed(
            catalog,
            make_course("low", rating=1.0),
            make_course("high", rating=5.0),
            make_course("mid", rating=3.0),
        )

        result = await recommendation_service.get_recommendations(RecommendationContext(user_id="u1"), 2)

        assert [r.course_id for r in result.recommendations] == ["high", "mid"]

    @pytest.mark.asyncio
    async def test_limit_above_maximum_is_rejected(self, recommendation_service):
        with pytest.raises(InvalidInputError):
            await recommendation_service.get_recommendations(RecommendationContext(user_id="u1"), 31)

    @pytest.mark.asyncio
    async def test_prerequisites_and_rated_skills_add_weight(self, catalog, recommendation_service):
        await seed(
            catalog,
            make_course("intro", skills=["sql"]),
            make_course("next", skills=["sql", "python"], prerequisites=["intro"]),
            make_course("plain", skills=["python"]),
        )
        context = RecommendationContext(
            user_id="u1",
            enrolled_course_ids=["intro"],
            ratings=[CourseRatingEntry(course_id="intro", rating=5)]
        )

        result = await recommendation_service.get_recommendations(context)
        scores = {r.course_id: r.score for r in result.recommendations}

        assert scores["next"] - scores["plain"] == pytest.approx(25 + 15)

    @pytest.mark.asyncio
    async def test_stored_profile_is_not_overwritten_by_context(self, catalog, recommendation_service, repositories):
        await seed(catalog, make_course("c1", category_id="prog"))
        await recommendation_service.record_user_activity("u1", ActivityType.VIEW, "c1")

        context = RecommendationContext(user_id="u1", preferred_categories=["design", "music"])
        await recommendation_service.get_recommendations(context)

        profile = await repositories.profiles.get("u1")
        assert profile.preferred_categories == {"prog": 1}

    @pytest.mark.asyncio
    async def test_profile_seeded_from_first_context(self, catalog, recommendation_service, repositories):
        context = RecommendationContext(
            user_id="u2",
            enrolled_course_ids=["a"],
            browsed_course_ids=["b"],
            preferred_categories=["prog"],
            ratings=[CourseRatingEntry(course_id="a", rating=4)]
        )

        await recommendation_service.get_recommendations(context)

        profile = await repositories.profiles.get("u2")
        assert profile.enrolled_courses == {"a"}
        assert profile.browsed_courses == {"b": 1}
        assert profile.ratings == {"a": 4}
        assert profile.preferred_categories == {"prog": 1}


class TestRecommendationReasons:

    def make_service(self):
        return RecommendationEngineService(catalog=None, profiles=None)

    def test_level_reason_when_category_not_followed(self):
        course = make_course("c1", level=CourseLevel.ADVANCED)
        context = RecommendationContext(user_id="u1", preferred_levels=[CourseLevel.ADVANCED])

        reason = self.make_service().generate_recommendation_reason(course, context)

        assert reason == "Perfect advanced course for your level"

    def test_instructor_reason_otherwise(self):
        course = make_course("c1", instructor_name="Alan Turing", enrollment_count=9000, skills=["logic"])

        reason = self.make_service().generate_recommendation_reason(course, RecommendationContext(user_id="u1"))

        assert reason == "Taught by highly-rated instructor Alan Turing"


class TestCollaborativeFiltering:

    def test_neighbors_share_a_rated_course(self):
        profiles = [
            UserProfile(user_id="u1", ratings={"c1": 5}),
            UserProfile(user_id="u2", ratings={"c1": 4, "c2": 5}),
            UserProfile(user_id="u3", ratings={"c3": 2}),
        ]
        algorithm = CollaborativeFilteringAlgorithm()

        neighbors = algorithm.find_similar_users("u1", profiles)

        assert [p.user_id for p in neighbors] == ["u2"]
        assert algorithm.score("u1", "c2", profiles) == pytest.approx(5)

    def test_unrated_neighbors_count_as_zero(self):
        profiles = [
            UserProfile(user_id="u1", ratings={"c1": 5}),
            UserProfile(user_id="u2", ratings={"c1": 4, "c2": 4}),
            UserProfile(user_id="u3", ratings={"c1": 3}),
        ]

        score = CollaborativeFilteringAlgorithm().score("u1", "c2", profiles)

        assert score == pytest.approx(2)

    def test_user_without_ratings_has_no_neighbors(self):
        profiles = [UserProfile(user_id="u1"), UserProfile(user_id="u2", ratings={"c1": 4})]

        assert CollaborativeFilteringAlgorithm().score("u1", "c1", profiles) == 0

    @pytest.mark.asyncio
    async def test_neighbor_ratings_feed_recommendation_score(self, catalog, recommendation_service):
        await seed(catalog, make_course("seen"), make_course("liked"), make_course("other"))
        await recommendation_service.record_user_activity("u2", ActivityType.RATE, "seen", rating=4)
        await recommendation_service.record_user_activity("u2", ActivityType.RATE, "liked", rating=5)
        context = RecommendationContext(
            user_id="u1",
            enrolled_course_ids=["seen"],
            ratings=[CourseRatingEntry(course_id="seen", rating=5)]
        )

        result = await recommendation_service.get_recommendations(context)
        scores = {r.course_id: r.score for r in result.recommendations}

        assert scores["liked"] - scores["other"] == pytest.approx(12 * 5)


class TestActivityRecording:

    @pytest.mark.asyncio
    async def test_repeated_views_count_and_weight(self, catalog, recommendation_service):
        await seed(catalog, make_course("c1", category_id="prog"))

        await recommendation_service.record_user_activity("u1", ActivityType.VIEW, "c1")
        profile = await recommendation_service.record_user_activity("u1", ActivityType.VIEW, "c1")

        assert profile.browsed_courses["c1"] == 2
        assert profile.preferred_categories["prog"] == 2

    @pytest.mark.asyncio
    async def test_every_activity_type_bumps_category_weight(self, catalog, recommendation_service):
        await seed(catalog, make_course("c1", category_id="prog"))

        await recommendation_service.record_user_activity("u1", ActivityType.ENROLL, "c1")
        await recommendation_service.record_user_activity("u1", ActivityType.RATE, "c1", rating=3)
        profile = await recommendation_service.record_user_activity("u1", ActivityType.COMPLETE, "c1")

        assert profile.enrolled_courses == {"c1"}
        assert profile.ratings == {"c1": 3}
        assert profile.preferred_categories["prog"] == 3

    @pytest.mark.asyncio
    async def test_rating_overwrites(self, catalog, recommendation_service):
        await seed(catalog, make_course("c1"))

        await recommendation_service.record_user_activity("u1", "rate", "c1", rating=2)
        profile = await recommendation_service.record_user_activity("u1", "rate", "c1", rating=5)

        assert profile.ratings["c1"] == 5

    @pytest.mark.asyncio
    async def test_unknown_course(self, recommendation_service):
        with pytest.raises(NotFoundError):
            await recommendation_service.record_user_activity("u1", ActivityType.VIEW, "ghost")


class TestSimilarCourses:

    @pytest.mark.asyncio
    async def test_similarity_ranking(self, catalog, recommendation_service):
        await seed(
            catalog,
            make_course("base", title="Intro to ML", tags=["ml", "ai"], skills=["python"], rating=4.5),
            make_course("twin", tags=["ml", "ai"], skills=["python"], rating=4.6),
            make_course("cousin", category_id="design", instructor_id="inst-2", language="fr", rating=2.0),
            make_course("hidden", tags=["ml", "ai"], is_published=False),
        )

        similar = await recommendation_service.get_similar_courses("base", 5)

        assert [r.course_id for r in similar] == ["twin", "cousin"]
        assert similar[0].score == pytest.approx(40 + 20 + 30 + 2 * 5 + 8 + 10 + 15)
        assert similar[1].score == pytest.approx(20)
        assert all(r.reason == "Similar to Intro to ML" for r in similar)

    @pytest.mark.asyncio
    async def test_missing_base_course(self, recommendation_service):
        with pytest.raises(NotFoundError):
            await recommendation_service.get_similar_courses("ghost")

    @pytest.mark.asyncio
    async def test_limit_above_twenty(self, catalog, recommendation_service):
        await seed(catalog, make_course("base"))

        with pytest.raises(InvalidInputError):
            await recommendation_service.get_similar_courses("base", 21)


class TestTrendingCourses:

    @pytest.mark.asyncio
    async def test_trending_order_includes_unpublished(self, catalog, recommendation_service):
        await seed(
            catalog,
            make_course("stale", enrollment_count=100, age_days=400),
            make_course("fresh", enrollment_count=100, age_days=10, is_published=False),
            make_course("recent", enrollment_count=100, age_days=60),
        )

        trending = await recommendation_service.get_trending_courses(10)

        assert [c.id for c in trending] == ["fresh", "recent", "stale"]

    def test_trending_score(self):
        course = make_course("c1", enrollment_count=50, rating=4.0, age_days=45)

        score = ContentBasedFilteringAlgorithm().trending_score(course, course.metadata.created_at)

        # Scored at creation time, so the newest bonus applies
        assert score == pytest.approx(10 * math.log(51) + 32 + 50)

    @pytest.mark.asyncio
    async def test_trending_cached_after_first_call(self, catalog, repositories, mock_cache):
        service = RecommendationEngineService(catalog, repositories.profiles, mock_cache, trending_ttl=60)
        await seed(catalog, make_course("c1"))

        await service.get_trending_courses(5)

        mock_cache.set_cache.assert_awaited_once()
        key, payload, ttl = mock_cache.set_cache.await_args.args
        assert key == "trending:5"
        assert payload[0]["id"] == "c1"
        assert ttl == 60

    @pytest.mark.asyncio
    async def test_trending_cache_hit(self, catalog, repositories, mock_cache, course_factory):
        cached_course = course_factory("cached").model_dump(mode="json")
        mock_cache.get_cache = AsyncMock(return_value=[cached_course])
        service = RecommendationEngineService(catalog, repositories.profiles, mock_cache)

        trending = await service.get_trending_courses(5)

        assert [c.id for c in trending] == ["cached"]
