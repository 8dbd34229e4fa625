"""
Quiz, submission and grading data models
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Union
from datetime import datetime
from enum import Enum

from learnhub.models.course import utc_now


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    ESSAY = "essay"


class QuizDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"
    GRADED = "graded"


class LetterGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


AnswerValue = Union[str, List[str]]


class QuestionOption(BaseModel):
    """Multiple-choice option"""
    id: str
    text: str
    is_correct: bool = False
    explanation: Optional[str] = None


class Question(BaseModel):
    """Quiz question"""
    id: str
    type: QuestionType
    question: str
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[AnswerValue] = None
    points: float = Field(1.0, ge=0.0)
    explanation: Optional[str] = None
    order: int = 0


class QuestionInput(BaseModel):
    """Question as supplied by an instructor; id optional"""
    id: Optional[str] = None
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str = ""
    options: Optional[List[QuestionOption]] = None
    correct_answer: Optional[AnswerValue] = None
    points: float = Field(1.0, ge=0.0)
    explanation: Optional[str] = None


class QuizSettings(BaseModel):
    time_limit: Optional[int] = Field(None, description="Minutes; None for no limit")
    attempts_allowed: int = Field(1, ge=1)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_correct_answers: bool = False
    show_results: bool = True
    passing_score: float = Field(70.0, ge=0.0, le=100.0, description="Percentage required to pass")
    allow_review: bool = True
    auto_submit: bool = False


class QuizSettingsUpdate(BaseModel):
    time_limit: Optional[int] = None
    attempts_allowed: Optional[int] = Field(None, ge=1)
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    show_results: Optional[bool] = None
    passing_score: Optional[float] = Field(None, ge=0.0, le=100.0)
    allow_review: Optional[bool] = None
    auto_submit: Optional[bool] = None


class QuizMetadata(BaseModel):
    difficulty: QuizDifficulty = QuizDifficulty.MEDIUM
    estimated_duration: int = Field(30, description="Minutes")
    tags: List[str] = Field(default_factory=list)
    instructions: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    is_published: bool = False


class QuizMetadataUpdate(BaseModel):
    difficulty: Optional[QuizDifficulty] = None
    estimated_duration: Optional[int] = None
    tags: Optional[List[str]] = None
    instructions: Optional[str] = None
    is_published: Optional[bool] = None


class Quiz(BaseModel):
    id: str
    title: str
    description: str = ""
    course_id: str
    instructor_id: str
    questions: List[Question] = Field(default_factory=list)
    settings: QuizSettings = Field(default_factory=QuizSettings)
    metadata: QuizMetadata = Field(default_factory=QuizMetadata)


class CreateQuizRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    course_id: str = Field(..., min_length=1)
    questions: List[QuestionInput] = Field(default_factory=list)
    settings: QuizSettingsUpdate = Field(default_factory=QuizSettingsUpdate)
    metadata: QuizMetadataUpdate = Field(default_factory=QuizMetadataUpdate)


class UpdateQuizRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[QuestionInput]] = None
    settings: Optional[QuizSettingsUpdate] = None
    metadata: Optional[QuizMetadataUpdate] = None


class QuizFilter(BaseModel):
    course_id: Optional[str] = None
    instructor_id: Optional[str] = None
    difficulty: Optional[QuizDifficulty] = None
    is_published: Optional[bool] = None
    tags: List[str] = Field(default_factory=list)
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class QuizAnswer(BaseModel):
    """Submitted answer; grading fields populated after grading"""
    question_id: str
    answer: AnswerValue
    is_correct: Optional[bool] = None
    points_earned: Optional[float] = None
    feedback: Optional[str] = None
    needs_manual_review: bool = False


class SubmittedAnswer(BaseModel):
    question_id: str
    answer: AnswerValue


class QuizAttempt(BaseModel):
    """Request body for submitting answers to a quiz addressed by path"""
    answers: List[SubmittedAnswer]
    time_spent: int = Field(..., ge=0, description="Seconds")


class SubmitQuizRequest(BaseModel):
    quiz_id: str = Field(..., min_length=1)
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    time_spent: int = Field(0, ge=0, description="Seconds")


class QuizSubmission(BaseModel):
    id: str
    quiz_id: str
    user_id: str
    answers: List[QuizAnswer] = Field(default_factory=list)
    submitted_at: datetime = Field(default_factory=utc_now)
    time_spent: int = Field(0, ge=0, description="Seconds")
    status: SubmissionStatus = SubmissionStatus.SUBMITTED


class ResultSummary(BaseModel):
    correct_answers: int
    total_questions: int
    average_score: float


class QuizResult(BaseModel):
    id: str
    quiz_id: str
    user_id: str
    submission_id: str
    total_points: float
    earned_points: float
    percentage: float
    grade: LetterGrade
    passed: bool
    graded_at: datetime = Field(default_factory=utc_now)
    time_spent: int = 0
    answers: List[QuizAnswer] = Field(default_factory=list)
    summary: ResultSummary


class QuizStatistics(BaseModel):
    total_submissions: int
    average_score: float
    pass_rate: float
    average_time: int
    total_questions: int
    total_points: float


class GradingStatistics(BaseModel):
    total_graded: int = 0
    average_score: float = 0.0
    highest_score: float = 0.0
    lowest_score: float = 0.0
    pass_rate: float = 0.0
    grade_distribution: Dict[LetterGrade, int] = Field(
        default_factory=lambda: {grade: 0 for grade in LetterGrade}
    )
