"""
Request dependencies resolving the services built at startup
"""
from fastapi import Header, Request

from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.grading_service import GradingService
from learnhub.services.notification_service import NotificationService
from learnhub.services.quiz_service import QuizService
from learnhub.services.recommendation_engine_service import RecommendationEngineService
from learnhub.services.search_service import SearchService


def get_catalog_service(request: Request) -> CourseCatalogService:
    return request.app.state.catalog_service


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_recommendation_service(request: Request) -> RecommendationEngineService:
    return request.app.state.recommendation_service


def get_quiz_service(request: Request) -> QuizService:
    return request.app.state.quiz_service


def get_grading_service(request: Request) -> GradingService:
    return request.app.state.grading_service


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


# Authentication happens upstream; the gateway forwards the caller's id
async def get_current_user_id(x_user_id: str = Header("default-user")) -> str:
    return x_user_id


async def get_current_instructor_id(x_user_id: str = Header("default-instructor")) -> str:
    return x_user_id
