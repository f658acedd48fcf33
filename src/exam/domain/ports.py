from abc import ABC, abstractmethod

from src.exam.domain.models import (
    AnswerRecord,
    ExamSession,
    ExamType,
    Question,
    QuestionType,
    SessionAnswer,
)


class IExamRepository(ABC):
    # --- Question bank (read only) ---

    @abstractmethod
    def fetch_questions(
        self,
        exam_type: ExamType,
        domain: str | None = None,
        question_type: QuestionType | None = None,
    ) -> list[Question]:
        """
        Questions with their options, newest first.
        BOTH disables the exam type filter. Returns [] when the fetch fails.
        """
        pass

    @abstractmethod
    def fetch_questions_by_ids(self, question_ids: list[str]) -> list[Question]:
        pass

    @abstractmethod
    def fetch_domains(self, exam_type: ExamType) -> list[str]:
        pass

    # --- Answer history ---

    @abstractmethod
    def fetch_user_answers(self, user_id: str) -> list[AnswerRecord]:
        """All answers of one user, newest first."""
        pass

    @abstractmethod
    def fetch_all_answers(self) -> list[AnswerRecord]:
        pass

    # --- Sessions ---

    @abstractmethod
    def create_session(self, session: ExamSession) -> ExamSession:
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> ExamSession | None:
        pass

    @abstractmethod
    def update_session(self, session: ExamSession) -> None:
        pass

    @abstractmethod
    def list_sessions(self, user_id: str) -> list[ExamSession]:
        """Sessions of one user, most recent start first."""
        pass

    @abstractmethod
    def save_answer(self, answer: SessionAnswer) -> None:
        pass

    @abstractmethod
    def get_session_answers(self, session_id: str) -> list[SessionAnswer]:
        pass
