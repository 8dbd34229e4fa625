"""
Main FastAPI application entry point for the LearnHub course platform
"""
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from typing import Optional

from learnhub.core.config import settings
from learnhub.core.database import init_database, close_database, build_mongo_repositories
from learnhub.core.redis_client import init_redis, close_redis, cache_manager, CacheManager
from learnhub.core.error_handling import (
    LearnHubError, error_handler, create_error_response, get_request_id
)
from learnhub.core.logging_config import setup_logging, APILoggingMiddleware
from learnhub.core.stores import Repositories, build_memory_repositories
from learnhub.api.v1.api import api_router
from learnhub.models.course import utc_now
from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.search_service import SearchService
from learnhub.services.recommendation_engine_service import RecommendationEngineService
from learnhub.services.quiz_service import QuizService
from learnhub.services.grading_service import GradingService
from learnhub.services.notification_service import NotificationService

# Setup logging
logger = setup_logging()


def install_services(app: FastAPI, repositories: Repositories, cache: Optional[CacheManager] = None):
    """Wire the engines onto app.state"""
    catalog_service = CourseCatalogService(repositories.courses, cache)
    quiz_service = QuizService(repositories.quizzes, repositories.submissions, repositories.results)

    app.state.repositories = repositories
    app.state.catalog_service = catalog_service
    app.state.search_service = SearchService(
        catalog_service,
        repositories.categories,
        repositories.search_analytics,
        cache,
        popular_searches_ttl=settings.POPULAR_SEARCHES_CACHE_TTL
    )
    app.state.recommendation_service = RecommendationEngineService(
        catalog_service,
        repositories.profiles,
        cache,
        trending_ttl=settings.TRENDING_CACHE_TTL
    )
    app.state.quiz_service = quiz_service
    app.state.grading_service = GradingService(quiz_service)
    app.state.notification_service = NotificationService(
        repositories.notifications,
        repositories.notification_preferences
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")

    if not hasattr(app.state, "repositories"):
        if settings.STORAGE_BACKEND == "mongodb":
            repositories = build_mongo_repositories(await init_database())
        else:
            repositories = build_memory_repositories()

        cache = None
        if settings.CACHE_ENABLED:
            try:
                await init_redis()
                cache = cache_manager
            except Exception as e:
                logger.warning(f"Redis unavailable, continuing without cache: {e}")

        install_services(app, repositories, cache)

    logger.info(f"Application startup completed (storage: {settings.STORAGE_BACKEND})")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME}")
    await close_redis()
    await close_database()
    logger.info("Application shutdown completed")


def create_app(repositories: Optional[Repositories] = None, cache: Optional[CacheManager] = None) -> FastAPI:
    """Build the application; supplied repositories skip backend selection at startup"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Course search, recommendations and quiz grading",
        version="1.0.0",
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan
    )

    # Add API logging middleware (first, to capture all requests)
    app.add_middleware(
        APILoggingMiddleware,
        log_requests=True,
        log_responses=True
    )

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_STR)

    @app.get("/")
    async def root():
        """Service banner"""
        return {
            "message": f"{settings.PROJECT_NAME} API",
            "version": "1.0.0",
            "status": "operational"
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint for load balancers"""
        return {
            "status": "healthy" if hasattr(request.app.state, "repositories") else "starting",
            "timestamp": utc_now().isoformat(),
            "services": {
                "storage": settings.STORAGE_BACKEND,
                "cache": "connected" if cache_manager.enabled else "disabled"
            }
        }

    if repositories is not None:
        install_services(app, repositories, cache)

    return app


def register_exception_handlers(app: FastAPI):
    """Global exception handlers producing standardized error responses"""

    @app.exception_handler(LearnHubError)
    async def domain_exception_handler(request: Request, exc: LearnHubError):
        """Handle engine failures (not found, invalid input, attempts exhausted)"""
        error = error_handler.handle_domain_error(exc, request_id=get_request_id(request))
        error_handler.log_error(error, request)
        return create_error_response(error)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with standardized error responses"""
        error = error_handler.handle_http_exception(exc, request_id=get_request_id(request))
        error_handler.log_error(error, request)
        return create_error_response(error)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        error = error_handler.handle_validation_error(exc, request_id=get_request_id(request))
        error_handler.log_error(error, request)
        return create_error_response(error)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions"""
        error = error_handler.handle_generic_exception(exc, request_id=get_request_id(request))
        error_handler.log_error(error, request)
        return create_error_response(error)


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "learnhub.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
