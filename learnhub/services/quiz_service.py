"""
Quiz Service
Handles CRUD operations for quizzes, submissions, and results
"""
import logging
import uuid
from typing import List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ValidationError

from learnhub.core.error_handling import AttemptsExhaustedError, InvalidInputError, NotFoundError
from learnhub.core.stores import BaseStore
from learnhub.models.common import Pagination
from learnhub.models.course import utc_now
from learnhub.models.quiz import (
    CreateQuizRequest, Question, QuestionInput, Quiz, QuizAnswer, QuizFilter,
    QuizMetadata, QuizResult, QuizSettings, QuizStatistics, QuizSubmission,
    SubmissionStatus, SubmitQuizRequest, UpdateQuizRequest
)
from learnhub.services.pagination import build_pagination, paginate, validate_page

logger = logging.getLogger(__name__)

MAX_RESULTS_PAGE_SIZE = 100

ModelT = TypeVar("ModelT", bound=BaseModel)


def generate_id() -> str:
    return uuid.uuid4().hex


def build_questions(questions: List[QuestionInput], keep_ids: bool) -> List[Question]:
    """Position becomes order; supplied ids survive only when keep_ids is set"""
    return [
        Question(
            id=(question.id if keep_ids and question.id else generate_id()),
            type=question.type,
            question=question.question,
            options=question.options,
            correct_answer=question.correct_answer,
            points=question.points,
            explanation=question.explanation,
            order=index
        )
        for index, question in enumerate(questions)
    ]


def merge_validated(current: ModelT, update: BaseModel, section: str) -> ModelT:
    """Apply the explicitly supplied fields and re-validate the merged section"""
    merged = {**current.model_dump(), **update.model_dump(exclude_unset=True)}
    try:
        return type(current).model_validate(merged)
    except ValidationError as e:
        fields = [".".join(str(loc) for loc in error["loc"]) for error in e.errors()]
        raise InvalidInputError(f"Invalid quiz {section}: {', '.join(fields)}", {section: fields}) from e


class QuizService:
    """Quiz definitions, attempt-limited submissions and stored results"""

    def __init__(
        self,
        quizzes: BaseStore[Quiz],
        submissions: BaseStore[QuizSubmission],
        results: BaseStore[QuizResult]
    ):
        self.quizzes = quizzes
        self.submissions = submissions
        self.results = results

    async def create_quiz(self, request: CreateQuizRequest, instructor_id: str) -> Quiz:
        """Create an unpublished quiz owned by instructor_id"""
        now = utc_now()
        metadata = QuizMetadata(created_at=now, updated_at=now, is_published=False)
        metadata = metadata.model_copy(
            update=request.metadata.model_dump(exclude_none=True, exclude={"is_published"})
        )

        quiz = Quiz(
            id=generate_id(),
            title=request.title,
            description=request.description,
            course_id=request.course_id,
            instructor_id=instructor_id,
            questions=build_questions(request.questions, keep_ids=False),
            settings=QuizSettings(**request.settings.model_dump(exclude_none=True)),
            metadata=metadata
        )
        await self.quizzes.add(quiz)

        logger.info(
            f"Quiz created: {quiz.id} with {len(quiz.questions)} questions",
            extra={"quiz_id": quiz.id, "course_id": quiz.course_id, "user_id": instructor_id}
        )
        return quiz

    async def get_quiz(self, quiz_id: str) -> Quiz:
        quiz = await self.quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz not found: {quiz_id}", {"quiz_id": quiz_id})
        return quiz

    async def list_quizzes(self, quiz_filter: Optional[QuizFilter] = None) -> Tuple[List[Quiz], Pagination]:
        """Filtered quizzes, newest first, one page at a time"""
        quiz_filter = quiz_filter or QuizFilter()
        quizzes = [quiz for quiz in await self.quizzes.list_all() if self._matches(quiz, quiz_filter)]
        quizzes.sort(key=lambda quiz: quiz.metadata.created_at, reverse=True)

        page_quizzes, _ = paginate(quizzes, quiz_filter.page, quiz_filter.limit)
        return page_quizzes, build_pagination(quiz_filter.page, quiz_filter.limit, len(quizzes))

    def _matches(self, quiz: Quiz, quiz_filter: QuizFilter) -> bool:
        if quiz_filter.course_id and quiz.course_id != quiz_filter.course_id:
            return False
        if quiz_filter.instructor_id and quiz.instructor_id != quiz_filter.instructor_id:
            return False
        if quiz_filter.difficulty and quiz.metadata.difficulty != quiz_filter.difficulty:
            return False
        if quiz_filter.is_published is not None and quiz.metadata.is_published != quiz_filter.is_published:
            return False
        if quiz_filter.tags and not any(tag in quiz.metadata.tags for tag in quiz_filter.tags):
            return False
        return True

    async def update_quiz(self, quiz_id: str, request: UpdateQuizRequest) -> Quiz:
        """Merge the supplied fields into the stored quiz; id and instructor never change"""
        quiz = await self.get_quiz(quiz_id)

        if request.title is not None:
            quiz.title = request.title
        if request.description is not None:
            quiz.description = request.description
        if request.questions is not None:
            quiz.questions = build_questions(request.questions, keep_ids=True)
        if request.settings is not None:
            quiz.settings = merge_validated(quiz.settings, request.settings, "settings")
        if request.metadata is not None:
            quiz.metadata = merge_validated(quiz.metadata, request.metadata, "metadata")

        quiz.metadata.updated_at = utc_now()
        await self.quizzes.update(quiz)

        logger.info(f"Quiz updated: {quiz_id}", extra={"quiz_id": quiz_id})
        return quiz

    async def delete_quiz(self, quiz_id: str) -> Quiz:
        """Delete a quiz along with its submissions and results"""
        quiz = await self.get_quiz(quiz_id)
        await self.quizzes.remove(quiz_id)

        removed_submissions = 0
        for submission in await self.submissions.list_all():
            if submission.quiz_id == quiz_id:
                await self.submissions.remove(submission.id)
                removed_submissions += 1

        for result in await self.results.list_all():
            if result.quiz_id == quiz_id:
                await self.results.remove(self.results.key_of(result))

        logger.info(
            f"Quiz deleted: {quiz_id} ({removed_submissions} submissions removed)",
            extra={"quiz_id": quiz_id}
        )
        return quiz

    async def toggle_publish(self, quiz_id: str) -> Quiz:
        quiz = await self.get_quiz(quiz_id)
        quiz.metadata.is_published = not quiz.metadata.is_published
        quiz.metadata.updated_at = utc_now()
        await self.quizzes.update(quiz)

        logger.info(
            f"Quiz {quiz_id} {'published' if quiz.metadata.is_published else 'unpublished'}",
            extra={"quiz_id": quiz_id}
        )
        return quiz

    async def submit_quiz(self, request: SubmitQuizRequest, user_id: str) -> QuizSubmission:
        """Record a submission unless the user has used up their attempts"""
        quiz = await self.get_quiz(request.quiz_id)

        attempts_used = len(await self.get_completed_attempts(request.quiz_id, user_id))
        if attempts_used >= quiz.settings.attempts_allowed:
            logger.warning(
                f"Attempt limit reached for quiz {request.quiz_id}",
                extra={"quiz_id": request.quiz_id, "user_id": user_id}
            )
            raise AttemptsExhaustedError(
                "No attempts remaining",
                {"quiz_id": request.quiz_id, "attempts_allowed": quiz.settings.attempts_allowed}
            )

        submission = QuizSubmission(
            id=generate_id(),
            quiz_id=request.quiz_id,
            user_id=user_id,
            answers=[QuizAnswer(question_id=a.question_id, answer=a.answer) for a in request.answers],
            submitted_at=utc_now(),
            time_spent=request.time_spent,
            status=SubmissionStatus.SUBMITTED
        )
        await self.submissions.add(submission)

        logger.info(
            f"Quiz submitted: {submission.id} (attempt {attempts_used + 1}/{quiz.settings.attempts_allowed})",
            extra={"quiz_id": request.quiz_id, "user_id": user_id}
        )
        return submission

    async def get_completed_attempts(self, quiz_id: str, user_id: str) -> List[QuizSubmission]:
        """Submissions that count against the attempt limit; grading does not refund one"""
        return [
            submission for submission in await self.submissions.list_all()
            if submission.quiz_id == quiz_id
            and submission.user_id == user_id
            and submission.status != SubmissionStatus.IN_PROGRESS
        ]

    async def get_submission(self, submission_id: str) -> QuizSubmission:
        submission = await self.submissions.get(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission not found: {submission_id}", {"submission_id": submission_id})
        return submission

    async def get_user_latest_submission(self, quiz_id: str, user_id: str) -> Optional[QuizSubmission]:
        submissions = [
            submission for submission in await self.submissions.list_all()
            if submission.quiz_id == quiz_id and submission.user_id == user_id
        ]
        submissions.sort(key=lambda submission: submission.submitted_at, reverse=True)
        return submissions[0] if submissions else None

    async def mark_submission_graded(self, submission: QuizSubmission, answers: List[QuizAnswer]) -> None:
        """Attach grading annotations to a stored submission"""
        stored = await self.submissions.get(submission.id)
        if stored is None:
            return
        stored.answers = answers
        stored.status = SubmissionStatus.GRADED
        await self.submissions.update(stored)

    async def get_quiz_results(
        self,
        quiz_id: str,
        user_id: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[QuizResult], Pagination]:
        """Results for a quiz, newest first"""
        validate_page(page)
        if limit < 1 or limit > MAX_RESULTS_PAGE_SIZE:
            raise InvalidInputError(
                f"limit must be between 1 and {MAX_RESULTS_PAGE_SIZE}", {"limit": limit}
            )

        results = await self.get_all_results(quiz_id, user_id)
        page_results, _ = paginate(results, page, limit)
        return page_results, build_pagination(page, limit, len(results))

    async def get_all_results(self, quiz_id: str, user_id: Optional[str] = None) -> List[QuizResult]:
        results = [
            result for result in await self.results.list_all()
            if result.quiz_id == quiz_id and (user_id is None or result.user_id == user_id)
        ]
        results.sort(key=lambda result: result.graded_at, reverse=True)
        return results

    async def store_quiz_result(self, result: QuizResult) -> QuizResult:
        """Results are keyed by submission, so a regrade replaces the earlier one"""
        if await self.results.get(self.results.key_of(result)) is None:
            await self.results.add(result)
        else:
            await self.results.update(result)

        logger.info(
            f"Quiz result stored for submission {result.submission_id}: {result.percentage}%",
            extra={"quiz_id": result.quiz_id, "user_id": result.user_id}
        )
        return result

    async def get_quiz_statistics(self, quiz_id: str) -> QuizStatistics:
        quiz = await self.get_quiz(quiz_id)

        submissions = [
            submission for submission in await self.submissions.list_all()
            if submission.quiz_id == quiz_id and submission.status != SubmissionStatus.IN_PROGRESS
        ]
        results = await self.get_all_results(quiz_id)

        average_score = sum(r.percentage for r in results) / len(results) if results else 0.0
        pass_rate = sum(1 for r in results if r.passed) / len(results) * 100 if results else 0.0
        average_time = sum(s.time_spent for s in submissions) / len(submissions) if submissions else 0.0

        return QuizStatistics(
            total_submissions=len(submissions),
            average_score=round(average_score, 2),
            pass_rate=round(pass_rate, 2),
            average_time=round(average_time),
            total_questions=len(quiz.questions),
            total_points=sum(question.points for question in quiz.questions)
        )
