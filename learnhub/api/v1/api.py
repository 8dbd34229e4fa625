"""
Main API router for v1 endpoints
"""
from fastapi import APIRouter

from learnhub.api.v1.endpoints import courses, recommendations, quizzes, notifications

api_router = APIRouter()

# Include all service routers
api_router.include_router(courses.router, prefix="/courses", tags=["courses"])
api_router.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])
api_router.include_router(quizzes.router, prefix="/quizzes", tags=["quizzes"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
