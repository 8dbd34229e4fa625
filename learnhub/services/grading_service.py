"""
Grading Service
Handles automatic grading for objective questions
"""
import logging
import uuid
from typing import List

from learnhub.models.course import utc_now
from learnhub.models.quiz import (
    GradingStatistics, LetterGrade, Question, QuestionType, QuizAnswer,
    QuizResult, QuizSubmission, ResultSummary
)
from learnhub.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

NO_CORRECT_ANSWER = "No correct answer specified"

GRADE_THRESHOLDS = [
    (90, LetterGrade.A),
    (80, LetterGrade.B),
    (70, LetterGrade.C),
    (60, LetterGrade.D),
]


def first_answer(answer: QuizAnswer) -> str:
    if isinstance(answer.answer, list):
        return answer.answer[0] if answer.answer else ""
    return answer.answer


def normalize_answer(value: str) -> str:
    return str(value).lower().strip()


class GradingService:
    """Automatic grading of quiz submissions"""

    def __init__(self, quiz_service: QuizService):
        self.quiz_service = quiz_service

    async def grade_submission(self, submission: QuizSubmission) -> QuizResult:
        """
        Grade every answer of a submission and store the result.

        Answers pointing at unknown questions score zero without aborting
        the rest of the submission.
        """
        quiz = await self.quiz_service.get_quiz(submission.quiz_id)
        questions = {question.id: question for question in quiz.questions}

        graded_answers: List[QuizAnswer] = []
        total_points = 0.0
        earned_points = 0.0

        for answer in submission.answers:
            question = questions.get(answer.question_id)
            if question is None:
                logger.warning(
                    f"Question {answer.question_id} not found while grading submission {submission.id}",
                    extra={"quiz_id": submission.quiz_id, "user_id": submission.user_id}
                )
                graded_answers.append(answer.model_copy(update={
                    "is_correct": False,
                    "points_earned": 0.0,
                    "feedback": "Question not found"
                }))
                continue

            total_points += question.points
            graded_answer = self.grade_answer(question, answer)
            graded_answers.append(graded_answer)
            earned_points += graded_answer.points_earned or 0.0

        percentage = earned_points / total_points * 100 if total_points > 0 else 0.0
        rounded_percentage = round(percentage, 2)

        result = QuizResult(
            id=uuid.uuid4().hex,
            quiz_id=submission.quiz_id,
            user_id=submission.user_id,
            submission_id=submission.id,
            total_points=total_points,
            earned_points=earned_points,
            percentage=rounded_percentage,
            grade=self.calculate_grade(percentage),
            passed=percentage >= quiz.settings.passing_score,
            graded_at=utc_now(),
            time_spent=submission.time_spent,
            answers=graded_answers,
            summary=ResultSummary(
                correct_answers=sum(1 for a in graded_answers if a.is_correct),
                total_questions=len(graded_answers),
                average_score=rounded_percentage
            )
        )

        await self.quiz_service.store_quiz_result(result)
        await self.quiz_service.mark_submission_graded(submission, graded_answers)

        logger.info(
            f"Graded submission {submission.id}: {earned_points}/{total_points} ({result.grade.value})",
            extra={"quiz_id": submission.quiz_id, "user_id": submission.user_id}
        )
        return result

    def grade_answer(self, question: Question, answer: QuizAnswer) -> QuizAnswer:
        """Dispatch on question type"""
        graded = answer.model_copy(update={"is_correct": False, "points_earned": 0.0, "feedback": ""})

        if question.type == QuestionType.MULTIPLE_CHOICE:
            return self._grade_multiple_choice(question, graded)
        if question.type == QuestionType.TRUE_FALSE:
            return self._grade_true_false(question, graded)
        if question.type == QuestionType.SHORT_ANSWER:
            return self._grade_short_answer(question, graded)
        if question.type == QuestionType.ESSAY:
            return self._grade_essay(graded)

        graded.feedback = "Unknown question type"
        return graded

    def _grade_multiple_choice(self, question: Question, answer: QuizAnswer) -> QuizAnswer:
        user_answer = first_answer(answer)
        correct_option = next((opt for opt in question.options or [] if opt.is_correct), None)

        if correct_option is None:
            answer.feedback = NO_CORRECT_ANSWER
            return answer

        is_correct = user_answer in (correct_option.id, correct_option.text)
        answer.is_correct = is_correct
        answer.points_earned = question.points if is_correct else 0.0
        if is_correct:
            answer.feedback = correct_option.explanation or "Correct answer!"
        else:
            answer.feedback = (
                f"Incorrect. {correct_option.explanation or f'The correct answer is: {correct_option.text}'}"
            )
        return answer

    def _grade_true_false(self, question: Question, answer: QuizAnswer) -> QuizAnswer:
        correct_answer = question.correct_answer
        if not isinstance(correct_answer, str):
            answer.feedback = NO_CORRECT_ANSWER
            return answer

        is_correct = normalize_answer(first_answer(answer)) == normalize_answer(correct_answer)
        answer.is_correct = is_correct
        answer.points_earned = question.points if is_correct else 0.0
        answer.feedback = "Correct!" if is_correct else f"Incorrect. The correct answer is: {correct_answer}"
        return answer

    def _grade_short_answer(self, question: Question, answer: QuizAnswer) -> QuizAnswer:
        if isinstance(question.correct_answer, list):
            correct_answers = question.correct_answer
        else:
            correct_answers = [question.correct_answer] if question.correct_answer else []

        if not correct_answers:
            answer.feedback = NO_CORRECT_ANSWER
            return answer

        user_answer = normalize_answer(first_answer(answer))
        is_correct = any(user_answer == normalize_answer(correct) for correct in correct_answers)
        answer.is_correct = is_correct
        answer.points_earned = question.points if is_correct else 0.0
        answer.feedback = (
            "Correct!" if is_correct
            else f"Incorrect. Possible correct answers: {', '.join(correct_answers)}"
        )
        return answer

    def _grade_essay(self, answer: QuizAnswer) -> QuizAnswer:
        answer.is_correct = None
        answer.points_earned = 0.0
        answer.needs_manual_review = True
        answer.feedback = "Essay questions require manual grading."
        return answer

    def calculate_grade(self, percentage: float) -> LetterGrade:
        for threshold, grade in GRADE_THRESHOLDS:
            if percentage >= threshold:
                return grade
        return LetterGrade.F

    async def grade_submissions(self, submissions: List[QuizSubmission]) -> List[QuizResult]:
        """Grade a batch; a failing submission is logged and skipped"""
        results = []
        for submission in submissions:
            try:
                results.append(await self.grade_submission(submission))
            except Exception:
                logger.exception(
                    f"Failed to grade submission {submission.id}",
                    extra={"quiz_id": submission.quiz_id, "user_id": submission.user_id}
                )
        return results

    async def regrade_submission(self, submission_id: str) -> QuizResult:
        submission = await self.quiz_service.get_submission(submission_id)
        logger.info(f"Regrading submission {submission_id}", extra={"quiz_id": submission.quiz_id})
        return await self.grade_submission(submission)

    async def get_grading_statistics(self, quiz_id: str) -> GradingStatistics:
        results = await self.quiz_service.get_all_results(quiz_id)
        if not results:
            return GradingStatistics()

        scores = [result.percentage for result in results]
        distribution = {grade: 0 for grade in LetterGrade}
        for result in results:
            distribution[result.grade] += 1

        return GradingStatistics(
            total_graded=len(results),
            average_score=round(sum(scores) / len(scores), 2),
            highest_score=round(max(scores), 2),
            lowest_score=round(min(scores), 2),
            pass_rate=round(sum(1 for r in results if r.passed) / len(results) * 100, 2),
            grade_distribution=distribution
        )
