"""
Quiz management, submission and grading API endpoints
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from learnhub.api.deps import (
    get_current_instructor_id, get_current_user_id, get_grading_service, get_quiz_service
)
from learnhub.models.common import APIResponse
from learnhub.models.quiz import (
    CreateQuizRequest, GradingStatistics, Quiz, QuizAttempt, QuizDifficulty, QuizFilter,
    QuizResult, QuizStatistics, QuizSubmission, SubmitQuizRequest, UpdateQuizRequest
)
from learnhub.services.grading_service import GradingService
from learnhub.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=APIResponse[Quiz], status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: CreateQuizRequest,
    instructor_id: str = Depends(get_current_instructor_id),
    quiz_service: QuizService = Depends(get_quiz_service)
):
    quiz = await quiz_service.create_quiz(request, instructor_id)
    return APIResponse(data=quiz, message="Quiz created")


@router.get("", response_model=APIResponse[List[Quiz]])
async def list_quizzes(
    course_id: Optional[str] = None,
    instructor_id: Optional[str] = None,
    difficulty: Optional[QuizDifficulty] = None,
    is_published: Optional[bool] = None,
    tags: Optional[List[str]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    quiz_service: QuizService = Depends(get_quiz_service)
):
    quiz_filter = QuizFilter(
        course_id=course_id,
        instructor_id=instructor_id,
        difficulty=difficulty,
        is_published=is_published,
        tags=tags or [],
        page=page,
        limit=limit
    )
    quizzes, pagination = await quiz_service.list_quizzes(quiz_filter)
    return APIResponse(data=quizzes, pagination=pagination)


@router.get("/submissions/{submission_id}", response_model=APIResponse[QuizSubmission])
async def get_submission(
    submission_id: str,
    quiz_service: QuizService = Depends(get_quiz_service)
):
    return APIResponse(data=await quiz_service.get_submission(submission_id))


@router.post("/submissions/{submission_id}/regrade", response_model=APIResponse[QuizResult])
async def regrade_submission(
    submission_id: str,
    grading_service: GradingService = Depends(get_grading_service)
):
    result = await grading_service.regrade_submission(submission_id)
    return APIResponse(data=result, message="Submission regraded")


@router.get("/{quiz_id}", response_model=APIResponse[Quiz])
async def get_quiz(quiz_id: str, quiz_service: QuizService = Depends(get_quiz_service)):
    return APIResponse(data=await quiz_service.get_quiz(quiz_id))


@router.put("/{quiz_id}", response_model=APIResponse[Quiz])
async def update_quiz(
    quiz_id: str,
    request: UpdateQuizRequest,
    quiz_service: QuizService = Depends(get_quiz_service)
):
    quiz = await quiz_service.update_quiz(quiz_id, request)
    return APIResponse(data=quiz, message="Quiz updated")


@router.delete("/{quiz_id}", response_model=APIResponse[Quiz])
async def delete_quiz(quiz_id: str, quiz_service: QuizService = Depends(get_quiz_service)):
    quiz = await quiz_service.delete_quiz(quiz_id)
    return APIResponse(data=quiz, message="Quiz deleted")


@router.post("/{quiz_id}/publish", response_model=APIResponse[Quiz])
async def toggle_quiz_publish(quiz_id: str, quiz_service: QuizService = Depends(get_quiz_service)):
    quiz = await quiz_service.toggle_publish(quiz_id)
    state = "published" if quiz.metadata.is_published else "unpublished"
    return APIResponse(data=quiz, message=f"Quiz {state}")


@router.post("/{quiz_id}/submit", response_model=APIResponse[Dict[str, Any]], status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: str,
    attempt: QuizAttempt,
    user_id: str = Depends(get_current_user_id),
    quiz_service: QuizService = Depends(get_quiz_service),
    grading_service: GradingService = Depends(get_grading_service)
):
    """
    Submit answers and grade them immediately

    A grading failure still returns the stored submission.
    """
    submission = await quiz_service.submit_quiz(
        SubmitQuizRequest(quiz_id=quiz_id, answers=attempt.answers, time_spent=attempt.time_spent),
        user_id
    )

    try:
        result = await grading_service.grade_submission(submission)
    except Exception:
        logger.exception(
            f"Grading failed for submission {submission.id}",
            extra={"quiz_id": quiz_id, "user_id": user_id}
        )
        return APIResponse(
            data={"submission": submission.model_dump(mode="json")},
            message="Quiz submitted but grading failed"
        )

    return APIResponse(
        data={
            "submission": submission.model_dump(mode="json"),
            "result": result.model_dump(mode="json")
        },
        message="Quiz submitted and graded"
    )


@router.get("/{quiz_id}/submission", response_model=APIResponse[Optional[QuizSubmission]])
async def get_user_submission(
    quiz_id: str,
    user_id: str = Depends(get_current_user_id),
    quiz_service: QuizService = Depends(get_quiz_service)
):
    """Most recent submission of the calling user"""
    submission = await quiz_service.get_user_latest_submission(quiz_id, user_id)
    return APIResponse(data=submission)


@router.get("/{quiz_id}/results", response_model=APIResponse[List[QuizResult]])
async def get_quiz_results(
    quiz_id: str,
    user_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    quiz_service: QuizService = Depends(get_quiz_service)
):
    results, pagination = await quiz_service.get_quiz_results(quiz_id, user_id, page, limit)
    return APIResponse(data=results, pagination=pagination)


@router.get("/{quiz_id}/statistics", response_model=APIResponse[QuizStatistics])
async def get_quiz_statistics(quiz_id: str, quiz_service: QuizService = Depends(get_quiz_service)):
    return APIResponse(data=await quiz_service.get_quiz_statistics(quiz_id))


@router.get("/{quiz_id}/grading-statistics", response_model=APIResponse[GradingStatistics])
async def get_grading_statistics(
    quiz_id: str,
    grading_service: GradingService = Depends(get_grading_service)
):
    return APIResponse(data=await grading_service.get_grading_statistics(quiz_id))
