"""
Recommendation API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, status

from learnhub.api.deps import get_recommendation_service
from learnhub.models.common import APIResponse
from learnhub.models.course import Course
from learnhub.models.recommendations import (
    ActivityRequest, Recommendation, RecommendationRequest, RecommendationResult, UserProfile
)
from learnhub.services.recommendation_engine_service import RecommendationEngineService

router = APIRouter()


@router.post("/personalized", response_model=APIResponse[RecommendationResult])
async def get_personalized_recommendations(
    request: RecommendationRequest,
    recommendation_service: RecommendationEngineService = Depends(get_recommendation_service)
):
    """
    Personalized recommendations for the user described by the context

    Stored profile history wins over the supplied context once a profile exists.
    """
    result = await recommendation_service.get_recommendations(request.context, request.limit)
    return APIResponse(
        data=result,
        message=f"Generated {len(result.recommendations)} recommendations"
    )


@router.get("/trending", response_model=APIResponse[List[Course]])
async def get_trending_courses(
    limit: int = 10,
    recommendation_service: RecommendationEngineService = Depends(get_recommendation_service)
):
    trending = await recommendation_service.get_trending_courses(limit)
    return APIResponse(data=trending)


@router.get("/similar/{course_id}", response_model=APIResponse[List[Recommendation]])
async def get_similar_courses(
    course_id: str,
    limit: int = 5,
    recommendation_service: RecommendationEngineService = Depends(get_recommendation_service)
):
    similar = await recommendation_service.get_similar_courses(course_id, limit)
    return APIResponse(data=similar)


@router.post("/activity", response_model=APIResponse[UserProfile], status_code=status.HTTP_201_CREATED)
async def record_user_activity(
    activity: ActivityRequest,
    recommendation_service: RecommendationEngineService = Depends(get_recommendation_service)
):
    """Record a view, enrollment, rating or completion"""
    profile = await recommendation_service.record_user_activity(
        activity.user_id, activity.activity_type, activity.course_id, activity.rating
    )
    return APIResponse(data=profile, message="Activity recorded")
