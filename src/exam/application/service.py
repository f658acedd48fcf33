import random
import uuid
from datetime import datetime, timezone

from src.config import ExamConfig
from src.exam.domain.answer_validator import format_answer_for_storage, validate_answer
from src.exam.domain.errors import (
    AnswerRejected,
    NoQuestionsAvailable,
    QuestionAlreadyAnswered,
    QuestionNotInSession,
    SessionNotFound,
    SessionOwnershipError,
)
from src.exam.domain.learner_stats import build_user_stats
from src.exam.domain.mock_exam import MockExamComposer
from src.exam.domain.models import (
    AnswerData,
    AnswerRecord,
    ChallengeMode,
    ExamSession,
    ExamType,
    Question,
    QuestionType,
    SelectionRequest,
    SessionAnswer,
    SessionResult,
    UserStats,
    ValidationResult,
)
from src.exam.domain.ports import IExamRepository
from src.exam.domain.question_selector import QuestionSelector, summarize_history
from src.fsm import SessionAction, SessionStateMachine
from src.shared.telemetry import Telemetry, measure_time


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExamService:
    def __init__(self, repo: IExamRepository, rng: random.Random | None = None):
        self.repo = repo
        self.telemetry = Telemetry("ExamService")
        self.selector = QuestionSelector(rng)
        self.composer = MockExamComposer(rng)

    # --- Question Logic ---

    @measure_time("select_questions")
    def select_questions(self, request: SelectionRequest) -> list[Question]:
        """
        Picks up to `request.count` questions for the user. Never raises: a
        failed or empty candidate fetch gives [] and a failed history fetch
        is treated as no history.
        """
        try:
            candidates = self.repo.fetch_questions(
                request.exam_type, request.domain, request.question_type
            )
        except Exception as e:
            self.telemetry.log_error(
                "Candidate fetch failed", e, exam_type=request.exam_type.value
            )
            Telemetry.count_selection(request.mode, "fetch_failed")
            return []

        if not candidates:
            self.telemetry.log_info(
                "No candidate questions",
                exam_type=request.exam_type.value,
                domain=request.domain,
            )
            Telemetry.count_selection(request.mode, "empty")
            return []

        user_answers = self._safe_history(request.user_id)
        global_answers = self._safe_history(None)
        history = summarize_history(user_answers, global_answers)

        selected = self.selector.select(candidates, history, request.mode, request.count)
        Telemetry.count_selection(request.mode, "served" if selected else "empty")
        return selected

    def _safe_history(self, user_id: str | None) -> list[AnswerRecord]:
        try:
            if user_id is None:
                return self.repo.fetch_all_answers()
            return self.repo.fetch_user_answers(user_id)
        except Exception as e:
            self.telemetry.log_error("Answer history fetch failed", e, user_id=user_id)
            return []

    @measure_time("get_exam_domains")
    def get_exam_domains(self, exam_type: ExamType) -> list[str]:
        try:
            domains = self.repo.fetch_domains(exam_type)
        except Exception as e:
            self.telemetry.log_error("Domain fetch failed", e, exam_type=exam_type.value)
            return []
        return sorted(set(domains))

    # --- Sessions ---

    @measure_time("start_session")
    def start_session(
        self,
        user_id: str,
        exam_type: ExamType,
        mode: str = ChallengeMode.RANDOM.value,
        domain: str | None = None,
        question_type: QuestionType | None = None,
        count: int = ExamConfig.DEFAULT_QUESTION_COUNT,
    ) -> ExamSession:
        Telemetry.start_trace()

        if mode == ChallengeMode.MOCK_EXAM.value:
            pool = self.repo.fetch_questions(exam_type)
            questions = self.composer.compose(pool, exam_type, count)
        else:
            questions = self.select_questions(
                SelectionRequest(
                    user_id=user_id,
                    exam_type=exam_type,
                    mode=mode,
                    domain=domain,
                    question_type=question_type,
                    count=count,
                )
            )

        if not questions:
            raise NoQuestionsAvailable(
                f"No questions for {exam_type.value} / {mode} / {domain or 'all'}"
            )

        session = ExamSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            exam_type=exam_type,
            challenge_mode=mode,
            domain_filter=domain,
            question_type=question_type,
            # Pool may be smaller than requested, score against what was served
            total_questions=len(questions),
            question_ids=[q.id for q in questions],
            start_time=_now(),
        )
        created = self.repo.create_session(session)
        self.telemetry.log_info(
            "Session started",
            session_id=created.id,
            user_id=user_id,
            mode=mode,
            requested=count,
            served=len(questions),
        )
        return created

    def get_session(self, session_id: str) -> ExamSession:
        session = self.repo.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_session_questions(self, session_id: str) -> list[Question]:
        session = self.get_session(session_id)
        by_id = {q.id: q for q in self.repo.fetch_questions_by_ids(session.question_ids)}
        return [by_id[qid] for qid in session.question_ids if qid in by_id]

    @measure_time("submit_answer")
    def submit_answer(
        self,
        session_id: str,
        user_id: str,
        question: Question,
        answer_data: AnswerData,
    ) -> ValidationResult:
        session = self.get_session(session_id)
        SessionStateMachine(session.status).transition(SessionAction.ANSWER)
        self._check_answer_allowed(session, user_id, question.id)

        result = validate_answer(question, answer_data)
        self.repo.save_answer(
            SessionAnswer(
                id=str(uuid.uuid4()),
                session_id=session.id,
                question_id=question.id,
                user_id=user_id,
                answer_data=format_answer_for_storage(question.question_type, answer_data),
                is_correct=result.is_correct,
                answered_at=_now(),
            )
        )

        self.telemetry.log_info(
            "Answer Submitted",
            session_id=session.id,
            q_id=question.id,
            correct=result.is_correct,
        )
        return result

    def _check_answer_allowed(
        self, session: ExamSession, user_id: str, question_id: str
    ) -> None:
        """One answer per served question, from the session's owner only."""
        error: AnswerRejected | None = None
        if user_id != session.user_id:
            error = SessionOwnershipError(session.id, question_id, user_id)
        elif question_id not in session.question_ids:
            error = QuestionNotInSession(session.id, question_id)
        elif any(
            a.question_id == question_id
            for a in self.repo.get_session_answers(session.id)
        ):
            error = QuestionAlreadyAnswered(session.id, question_id)

        if error is not None:
            self.telemetry.log_warning(
                "Answer rejected",
                session_id=session.id,
                q_id=question_id,
                reason=str(error),
            )
            raise error

    @measure_time("finish_session")
    def finish_session(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        session.status = SessionStateMachine(session.status).transition(
            SessionAction.FINISH
        )
        answers = self.repo.get_session_answers(session_id)
        session.score = sum(1 for a in answers if a.is_correct)
        session.end_time = _now()
        self.repo.update_session(session)

        self.telemetry.log_info(
            "Session Finalized",
            session_id=session_id,
            score=session.score,
            total=session.total_questions,
        )
        return session

    def interrupt_session(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        session.status = SessionStateMachine(session.status).transition(
            SessionAction.INTERRUPT
        )
        session.end_time = _now()
        self.repo.update_session(session)
        self.telemetry.log_info("Session Interrupted", session_id=session_id)
        return session

    # --- History ---

    def get_history(self, user_id: str) -> list[ExamSession]:
        return self.repo.list_sessions(user_id)

    def get_session_result(self, session_id: str) -> SessionResult:
        session = self.get_session(session_id)
        return SessionResult(
            session=session, answers=self.repo.get_session_answers(session_id)
        )

    @measure_time("get_user_stats")
    def get_user_stats(self, user_id: str, now: datetime | None = None) -> UserStats:
        answers = self._safe_history(user_id)
        question_ids = list(dict.fromkeys(a.question_id for a in answers))
        questions = {q.id: q for q in self.repo.fetch_questions_by_ids(question_ids)}
        sessions = self.repo.list_sessions(user_id)

        stats = build_user_stats(user_id, answers, questions, sessions, now or _now())
        self.telemetry.log_info(
            "User stats computed",
            user_id=user_id,
            answers=stats.total_answers,
            streak=stats.streak_days,
        )
        return stats
