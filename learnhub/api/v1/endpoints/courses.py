"""
Course search, catalog and category API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from learnhub.api.deps import get_catalog_service, get_search_service
from learnhub.core.error_handling import InvalidInputError
from learnhub.models.common import APIResponse
from learnhub.models.course import (
    Course, CourseCategory, PopularSearch, SearchAnalytics, SearchRequest, SearchResult
)
from learnhub.services.catalog_service import CourseCatalogService
from learnhub.services.search_service import SearchService

router = APIRouter()


@router.post("/search", response_model=APIResponse[SearchResult])
async def search_courses(
    request: SearchRequest,
    search_service: SearchService = Depends(get_search_service)
):
    """
    Full-text course search with structured filters, sorting and pagination
    """
    result = await search_service.search_courses(
        request.query, request.filters, request.session_id, request.user_id
    )
    return APIResponse(data=result, message=f"Found {result.total} courses")


@router.get("/suggestions", response_model=APIResponse[List[str]])
async def get_search_suggestions(
    q: str = Query(..., min_length=1),
    limit: int = 5,
    search_service: SearchService = Depends(get_search_service)
):
    suggestions = await search_service.get_search_suggestions(q, limit)
    return APIResponse(data=suggestions)


@router.get("/popular-searches", response_model=APIResponse[List[PopularSearch]])
async def get_popular_searches(
    limit: int = 10,
    search_service: SearchService = Depends(get_search_service)
):
    popular = await search_service.get_popular_searches(limit)
    return APIResponse(data=popular)


@router.get("/analytics", response_model=APIResponse[List[SearchAnalytics]])
async def get_search_analytics(
    q: str = "",
    search_service: SearchService = Depends(get_search_service)
):
    """Analytics records for one normalized query"""
    records = await search_service.get_search_analytics(q)
    return APIResponse(data=records)


@router.get("/categories", response_model=APIResponse[List[CourseCategory]])
async def get_categories(search_service: SearchService = Depends(get_search_service)):
    return APIResponse(data=await search_service.get_categories())


@router.get("/categories/tree", response_model=APIResponse[List[CourseCategory]])
async def get_category_tree(search_service: SearchService = Depends(get_search_service)):
    return APIResponse(data=await search_service.get_category_tree())


@router.put("/categories/{category_id}", response_model=APIResponse[CourseCategory])
async def upsert_category(
    category_id: str,
    category: CourseCategory,
    search_service: SearchService = Depends(get_search_service)
):
    if category.id != category_id:
        raise InvalidInputError("Category id does not match path", {"category_id": category_id})
    saved = await search_service.upsert_category(category)
    return APIResponse(data=saved, message="Category saved")


@router.delete("/categories/{category_id}", response_model=APIResponse)
async def delete_category(
    category_id: str,
    search_service: SearchService = Depends(get_search_service)
):
    await search_service.delete_category(category_id)
    return APIResponse(message="Category deleted")


@router.get("", response_model=APIResponse[List[Course]])
async def list_courses(catalog: CourseCatalogService = Depends(get_catalog_service)):
    return APIResponse(data=await catalog.list_courses())


@router.post("", response_model=APIResponse[Course], status_code=status.HTTP_201_CREATED)
async def add_course(
    course: Course,
    catalog: CourseCatalogService = Depends(get_catalog_service)
):
    saved = await catalog.add_course(course)
    return APIResponse(data=saved, message="Course added")


@router.get("/{course_id}", response_model=APIResponse[Course])
async def get_course(
    course_id: str,
    catalog: CourseCatalogService = Depends(get_catalog_service)
):
    return APIResponse(data=await catalog.require_course(course_id))


@router.put("/{course_id}", response_model=APIResponse[Course])
async def update_course(
    course_id: str,
    course: Course,
    catalog: CourseCatalogService = Depends(get_catalog_service)
):
    if course.id != course_id:
        raise InvalidInputError("Course id does not match path", {"course_id": course_id})
    saved = await catalog.update_course(course)
    return APIResponse(data=saved, message="Course updated")


@router.delete("/{course_id}", response_model=APIResponse)
async def remove_course(
    course_id: str,
    catalog: CourseCatalogService = Depends(get_catalog_service)
):
    await catalog.remove_course(course_id)
    return APIResponse(message="Course removed")
