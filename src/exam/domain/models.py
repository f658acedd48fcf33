from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# --- Enums ---
class ExamType(str, Enum):
    ENCOR = "ENCOR"
    ENARSI = "ENARSI"
    BOTH = "BOTH"


class QuestionType(str, Enum):
    SINGLE = "Single"
    MULTI = "Multi"
    DRAG_DROP = "DragDrop"
    SIMULATION = "Simulation"


class ChallengeMode(str, Enum):
    RANDOM = "random"
    WEAK_POINTS = "weak_points"
    HARD_QUESTIONS = "hard_questions"
    UNANSWERED = "unanswered"
    MOCK_EXAM = "mock_exam"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


# --- Entities ---
class Option(BaseModel):
    id: str
    question_id: str
    text: str
    is_correct: bool = False
    sort_order: int = 0


class Question(BaseModel):
    id: str
    exam_type: ExamType
    domain: str
    question_text: str
    question_type: QuestionType
    explanation: str | None = None
    simulation_target_json: dict[str, Any] | None = None
    is_important: bool = False
    created_at: datetime | None = None
    options: list[Option] = []

    @property
    def correct_options(self) -> list[Option]:
        return [o for o in self.options if o.is_correct]


class AnswerRecord(BaseModel):
    """One submitted answer. Several may exist per (user, question)."""

    question_id: str
    user_id: str | None = None
    is_correct: bool
    answered_at: datetime


class SelectionRequest(BaseModel):
    user_id: str
    exam_type: ExamType
    mode: str = ChallengeMode.RANDOM.value
    domain: str | None = None
    question_type: QuestionType | None = None
    count: int = Field(default=10, ge=0)


class ExamSession(BaseModel):
    id: str
    user_id: str
    exam_type: ExamType
    challenge_mode: str
    domain_filter: str | None = None
    question_type: QuestionType | None = None
    total_questions: int
    score: int = 0
    question_ids: list[str] = []
    start_time: datetime
    end_time: datetime | None = None
    status: SessionStatus = SessionStatus.IN_PROGRESS


class SessionAnswer(BaseModel):
    id: str
    session_id: str
    question_id: str
    user_id: str
    answer_data: dict[str, Any] = {}
    is_correct: bool
    answered_at: datetime


class DragDropPair(BaseModel):
    source: str
    target: str


class AnswerData(BaseModel):
    selected_options: list[str] | None = None
    pairs: list[DragDropPair] | None = None
    config: dict[str, str] | None = None


class ValidationResult(BaseModel):
    is_correct: bool
    correct_answer: list[str] = []
    explanation: str | None = None


class SessionResult(BaseModel):
    session: ExamSession
    answers: list[SessionAnswer]

    @property
    def accuracy(self) -> float:
        if not self.session.total_questions:
            return 0.0
        return self.session.score / self.session.total_questions


# --- Learner Statistics ---
class AccuracyStat(BaseModel):
    key: str
    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0


class UserStats(BaseModel):
    user_id: str
    completed_sessions: int = 0
    total_answers: int = 0
    correct_answers: int = 0
    # Mean of score / total_questions over the latest completed sessions
    average_recent_score: float = 0.0
    streak_days: int = 0
    by_domain: list[AccuracyStat] = []
    by_question_type: list[AccuracyStat] = []
    by_exam: list[AccuracyStat] = []

    @property
    def accuracy(self) -> float:
        return self.correct_answers / self.total_answers if self.total_answers else 0.0


# --- Scoring DTOs (live for one selection call) ---
@dataclass
class QuestionStats:
    attempts: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0

    def record(self, is_correct: bool) -> None:
        self.attempts += 1
        if is_correct:
            self.correct += 1


@dataclass
class AnswerHistory:
    """
    Aggregates derived from the user's own answers and from everyone's.
    `recent` holds at most RECENT_WINDOW results per question, newest first.
    """

    user_stats: dict[str, QuestionStats] = field(default_factory=dict)
    recent: dict[str, list[bool]] = field(default_factory=dict)
    global_stats: dict[str, QuestionStats] = field(default_factory=dict)

    def has_attempted(self, question_id: str) -> bool:
        return question_id in self.user_stats

    def last_answer_correct(self, question_id: str) -> bool | None:
        window = self.recent.get(question_id)
        return window[0] if window else None


@dataclass
class ScoredQuestion:
    question: Question
    score: float
