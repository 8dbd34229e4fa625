"""
Tests for automatic quiz grading
"""
import pytest
from hypothesis import given, strategies as st, settings as hypothesis_settings
from unittest.mock import MagicMock

from learnhub.core.error_handling import NotFoundError
from learnhub.models.quiz import (
    CreateQuizRequest, LetterGrade, Question, QuestionInput, QuestionOption, QuestionType,
    QuizAnswer, QuizSettingsUpdate, QuizSubmission, SubmissionStatus, SubmitQuizRequest,
    SubmittedAnswer, UpdateQuizRequest
)
from learnhub.services.grading_service import GradingService


def mc_question(points: float = 1.0) -> Question:
    return Question(
        id="q-mc",
        type=QuestionType.MULTIPLE_CHOICE,
        question="Which keyword defines a function?",
        options=[
            QuestionOption(id="opt-a", text="func"),
            QuestionOption(id="opt-b", text="def", is_correct=True),
            QuestionOption(id="opt-c", text="lambda"),
        ],
        points=points
    )


async def create_quiz(quiz_service, questions, passing_score=70.0, attempts_allowed=1):
    request = CreateQuizRequest(
        title="Quiz",
        course_id="course-1",
        questions=questions,
        settings=QuizSettingsUpdate(passing_score=passing_score, attempts_allowed=attempts_allowed)
    )
    return await quiz_service.create_quiz(request, "inst-1")


async def submit(quiz_service, quiz, answers, user_id="u1", time_spent=60):
    request = SubmitQuizRequest(
        quiz_id=quiz.id,
        answers=[SubmittedAnswer(question_id=qid, answer=answer) for qid, answer in answers],
        time_spent=time_spent
    )
    return await quiz_service.submit_quiz(request, user_id)


class TestGradeSubmission:

    @pytest.mark.asyncio
    async def test_true_false_is_case_and_whitespace_insensitive(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(type=QuestionType.TRUE_FALSE, question="Is Python dynamic?",
                           correct_answer="true", points=2)],
            passing_score=50
        )
        submission = await submit(quiz_service, quiz, [(quiz.questions[0].id, "TRUE ")])

        result = await grading_service.grade_submission(submission)

        assert result.earned_points == 2
        assert result.total_points == 2
        assert result.percentage == 100
        assert result.grade == LetterGrade.A
        assert result.passed is True
        assert result.answers[0].is_correct is True

    @pytest.mark.asyncio
    async def test_missing_question_scores_zero_and_continues(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(type=QuestionType.SHORT_ANSWER, question="Capital of France?",
                           correct_answer=["Paris"], points=4)]
        )
        submission = await submit(
            quiz_service, quiz, [("ghost", "anything"), (quiz.questions[0].id, " paris")]
        )

        result = await grading_service.grade_submission(submission)

        assert result.answers[0].feedback == "Question not found"
        assert result.answers[0].points_earned == 0
        assert result.total_points == 4
        assert result.earned_points == 4
        assert result.summary.correct_answers == 1
        assert result.summary.total_questions == 2

    @pytest.mark.asyncio
    async def test_essay_is_flagged_for_manual_review(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(type=QuestionType.ESSAY, question="Discuss the GIL.", points=10)]
        )
        submission = await submit(quiz_service, quiz, [(quiz.questions[0].id, "It serializes bytecode")])

        result = await grading_service.grade_submission(submission)

        answer = result.answers[0]
        assert answer.is_correct is None
        assert answer.points_earned == 0
        assert answer.needs_manual_review is True
        assert result.percentage == 0
        assert result.grade == LetterGrade.F
        assert result.passed is False

    @pytest.mark.asyncio
    async def test_percentage_rounded_and_grade_thresholds(self, quiz_service, grading_service):
        questions = [
            QuestionInput(type=QuestionType.TRUE_FALSE, question=f"Q{i}", correct_answer="true")
            for i in range(3)
        ]
        quiz = await create_quiz(quiz_service, questions, passing_score=60)
        answers = [(quiz.questions[0].id, "true"), (quiz.questions[1].id, "true"), (quiz.questions[2].id, "false")]
        submission = await submit(quiz_service, quiz, answers)

        result = await grading_service.grade_submission(submission)

        assert result.percentage == 66.67
        assert result.grade == LetterGrade.D
        assert result.passed is True
        assert result.summary.average_score == 66.67

    @pytest.mark.asyncio
    async def test_result_stored_and_submission_marked_graded(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(type=QuestionType.TRUE_FALSE, question="Q", correct_answer="false")]
        )
        submission = await submit(quiz_service, quiz, [(quiz.questions[0].id, "false")])

        result = await grading_service.grade_submission(submission)

        results, pagination = await quiz_service.get_quiz_results(quiz.id)
        stored_submission = await quiz_service.get_submission(submission.id)
        assert [r.id for r in results] == [result.id]
        assert pagination.total == 1
        assert stored_submission.status == SubmissionStatus.GRADED
        assert stored_submission.answers[0].is_correct is True

    @pytest.mark.asyncio
    async def test_missing_quiz(self, grading_service):
        submission = QuizSubmission(id="s1", quiz_id="ghost", user_id="u1")

        with pytest.raises(NotFoundError):
            await grading_service.grade_submission(submission)


class TestRegrading:

    @pytest.mark.asyncio
    async def test_regrade_overwrites_previous_result(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(id="keep", type=QuestionType.TRUE_FALSE, question="Q", correct_answer="true")]
        )
        submission = await submit(quiz_service, quiz, [(quiz.questions[0].id, "false")])
        first = await grading_service.grade_submission(submission)

        await quiz_service.update_quiz(quiz.id, UpdateQuizRequest(questions=[
            QuestionInput(id=quiz.questions[0].id, type=QuestionType.TRUE_FALSE, question="Q",
                          correct_answer="false")
        ]))
        second = await grading_service.regrade_submission(submission.id)

        results, _ = await quiz_service.get_quiz_results(quiz.id)
        assert first.percentage == 0
        assert second.percentage == 100
        assert [r.id for r in results] == [second.id]

    @pytest.mark.asyncio
    async def test_regrade_missing_submission(self, grading_service):
        with pytest.raises(NotFoundError):
            await grading_service.regrade_submission("ghost")


class TestBatchGradingAndStatistics:

    @pytest.mark.asyncio
    async def test_batch_skips_failures(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [QuestionInput(type=QuestionType.TRUE_FALSE, question="Q", correct_answer="true")],
            attempts_allowed=3
        )
        good = await submit(quiz_service, quiz, [(quiz.questions[0].id, "true")])
        orphan = QuizSubmission(id="orphan", quiz_id="ghost", user_id="u1")

        results = await grading_service.grade_submissions([orphan, good])

        assert [r.submission_id for r in results] == [good.id]

    @pytest.mark.asyncio
    async def test_statistics_without_results(self, grading_service):
        stats = await grading_service.get_grading_statistics("nothing")

        assert stats.total_graded == 0
        assert stats.grade_distribution == {grade: 0 for grade in LetterGrade}

    @pytest.mark.asyncio
    async def test_statistics_distribution(self, quiz_service, grading_service):
        quiz = await create_quiz(
            quiz_service,
            [
                QuestionInput(type=QuestionType.TRUE_FALSE, question="Q1", correct_answer="true"),
                QuestionInput(type=QuestionType.TRUE_FALSE, question="Q2", correct_answer="true"),
            ],
            passing_score=50
        )
        q1, q2 = (q.id for q in quiz.questions)
        for user_id, answers in [
            ("u1", [(q1, "true"), (q2, "true")]),
            ("u2", [(q1, "true"), (q2, "false")]),
            ("u3", [(q1, "false"), (q2, "false")]),
        ]:
            submission = await submit(quiz_service, quiz, answers, user_id=user_id)
            await grading_service.grade_submission(submission)

        stats = await grading_service.get_grading_statistics(quiz.id)

        assert stats.total_graded == 3
        assert stats.average_score == 50
        assert stats.highest_score == 100
        assert stats.lowest_score == 0
        assert stats.pass_rate == 66.67
        assert stats.grade_distribution[LetterGrade.A] == 1
        assert stats.grade_distribution[LetterGrade.F] == 2


class TestGradeAnswer:

    def setup_method(self):
        self.service = GradingService(MagicMock())

    def test_multiple_choice_by_text(self):
        graded = self.service.grade_answer(mc_question(), QuizAnswer(question_id="q-mc", answer="def"))

        assert graded.is_correct is True
        assert graded.feedback == "Correct answer!"

    def test_multiple_choice_array_uses_first_element(self):
        graded = self.service.grade_answer(
            mc_question(), QuizAnswer(question_id="q-mc", answer=["opt-a", "opt-b"])
        )

        assert graded.is_correct is False
        assert graded.feedback == "Incorrect. The correct answer is: def"

    def test_multiple_choice_without_flagged_option(self):
        question = mc_question()
        question.options = [QuestionOption(id="x", text="x")]

        graded = self.service.grade_answer(question, QuizAnswer(question_id="q-mc", answer="x"))

        assert graded.points_earned == 0
        assert graded.feedback == "No correct answer specified"

    def test_true_false_without_stored_answer(self):
        question = Question(id="q", type=QuestionType.TRUE_FALSE, question="?")

        graded = self.service.grade_answer(question, QuizAnswer(question_id="q", answer="true"))

        assert graded.feedback == "No correct answer specified"
        assert graded.points_earned == 0

    def test_short_answer_accepts_any_listed_answer(self):
        question = Question(
            id="q", type=QuestionType.SHORT_ANSWER, question="?", correct_answer=["colour", "color"], points=3
        )

        graded = self.service.grade_answer(question, QuizAnswer(question_id="q", answer="  COLOR"))

        assert graded.points_earned == 3

    @pytest.mark.parametrize("percentage,grade", [
        (100, LetterGrade.A), (90, LetterGrade.A), (89.99, LetterGrade.B), (80, LetterGrade.B),
        (70, LetterGrade.C), (60, LetterGrade.D), (59.99, LetterGrade.F), (0, LetterGrade.F),
    ])
    def test_letter_grade_thresholds(self, percentage, grade):
        assert self.service.calculate_grade(percentage) == grade

    @given(
        submitted=st.sampled_from(["opt-a", "opt-b", "opt-c", "func", "def", "lambda", "DEF", ""]),
        points=st.floats(min_value=0, max_value=100)
    )
    @hypothesis_settings(max_examples=100, deadline=None)
    def test_multiple_choice_is_all_or_nothing(self, submitted, points):
        service = GradingService(MagicMock())
        question = mc_question(points)

        graded = service.grade_answer(question, QuizAnswer(question_id="q-mc", answer=submitted))

        if submitted in ("opt-b", "def"):
            assert graded.points_earned == points
        else:
            assert graded.points_earned == 0
