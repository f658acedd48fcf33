from typing import Any, cast

from src.config import ExamConfig
from src.exam.domain.errors import RepositoryError
from src.exam.domain.models import (
    AnswerRecord,
    ExamSession,
    ExamType,
    Question,
    QuestionType,
    SessionAnswer,
)
from src.exam.domain.ports import IExamRepository
from src.shared.telemetry import Telemetry, measure_time
from supabase import Client, create_client


class SupabaseExamRepository(IExamRepository):
    """
    Expects `exam_sessions.question_ids jsonb not null default '[]'` on top of
    the hosted schema, holding the served question ids in order.
    """

    def __init__(self, url: str, key: str) -> None:
        self.telemetry = Telemetry("SupabaseRepository")
        try:
            self.client: Client = create_client(url, key)
        except Exception as e:
            self.telemetry.log_error("Failed to initialize Supabase client", e)
            raise

    def _fetch_all_pages(self, build_query: Any) -> list[dict[str, Any]]:
        """
        PostgREST caps each response, so history reads walk the table with
        .range() until a short page comes back.
        """
        page_size = ExamConfig.SUPABASE_PAGE_SIZE
        rows: list[dict[str, Any]] = []
        start = 0
        while True:
            response = build_query().range(start, start + page_size - 1).execute()
            page = cast(list[dict[str, Any]], response.data)
            rows.extend(page)
            if len(page) < page_size:
                return rows
            start += page_size

    # --- Question bank ---

    @measure_time("sb_fetch_questions")
    def fetch_questions(
        self,
        exam_type: ExamType,
        domain: str | None = None,
        question_type: QuestionType | None = None,
    ) -> list[Question]:
        try:
            query = (
                self.client.table("questions")
                .select("*, options(*)")
                .order("created_at", desc=True)
            )
            if exam_type != ExamType.BOTH:
                query = query.eq("exam_type", exam_type.value)
            if domain:
                query = query.eq("domain", domain)
            if question_type:
                query = query.eq("question_type", question_type.value)

            data = cast(list[dict[str, Any]], query.execute().data)
            return [Question.model_validate(row) for row in data]
        except Exception as e:
            self.telemetry.log_error("fetch_questions failed", e)
            return []

    @measure_time("sb_fetch_questions_by_ids")
    def fetch_questions_by_ids(self, question_ids: list[str]) -> list[Question]:
        if not question_ids:
            return []
        try:
            response = (
                self.client.table("questions")
                .select("*, options(*)")
                .in_("id", question_ids)
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)
            return [Question.model_validate(row) for row in data]
        except Exception as e:
            self.telemetry.log_error("fetch_questions_by_ids failed", e)
            return []

    def fetch_domains(self, exam_type: ExamType) -> list[str]:
        try:
            query = self.client.table("questions").select("domain")
            if exam_type != ExamType.BOTH:
                query = query.eq("exam_type", exam_type.value)
            data = cast(list[dict[str, Any]], query.execute().data)
            return sorted({str(row["domain"]) for row in data})
        except Exception as e:
            self.telemetry.log_error("fetch_domains failed", e)
            return []

    # --- Answer history ---

    @measure_time("sb_fetch_user_answers")
    def fetch_user_answers(self, user_id: str) -> list[AnswerRecord]:
        try:
            rows = self._fetch_all_pages(
                lambda: self.client.table("session_answers")
                .select("question_id, user_id, is_correct, answered_at")
                .eq("user_id", user_id)
                .order("answered_at", desc=True)
            )
            return [AnswerRecord.model_validate(row) for row in rows]
        except Exception as e:
            self.telemetry.log_error(f"fetch_user_answers failed for {user_id}", e)
            return []

    @measure_time("sb_fetch_all_answers")
    def fetch_all_answers(self) -> list[AnswerRecord]:
        try:
            rows = self._fetch_all_pages(
                lambda: self.client.table("session_answers")
                .select("question_id, is_correct, answered_at")
                .order("id")
            )
            return [AnswerRecord.model_validate(row) for row in rows]
        except Exception as e:
            self.telemetry.log_error("fetch_all_answers failed", e)
            return []

    # --- Sessions ---

    @measure_time("sb_create_session")
    def create_session(self, session: ExamSession) -> ExamSession:
        try:
            response = (
                self.client.table("exam_sessions")
                .insert(session.model_dump(mode="json"))
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)
            return ExamSession.model_validate(data[0]) if data else session
        except Exception as e:
            self.telemetry.log_error(f"create_session failed for {session.user_id}", e)
            raise RepositoryError("create_session failed") from e

    def get_session(self, session_id: str) -> ExamSession | None:
        try:
            response = (
                self.client.table("exam_sessions")
                .select("*")
                .eq("id", session_id)
                .limit(1)
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)
            return ExamSession.model_validate(data[0]) if data else None
        except Exception as e:
            self.telemetry.log_error(f"get_session failed for {session_id}", e)
            return None

    def update_session(self, session: ExamSession) -> None:
        payload = session.model_dump(
            mode="json", include={"total_questions", "score", "end_time", "status"}
        )
        try:
            self.client.table("exam_sessions").update(payload).eq(
                "id", session.id
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"update_session failed for {session.id}", e)
            raise RepositoryError("update_session failed") from e

    def list_sessions(self, user_id: str) -> list[ExamSession]:
        try:
            response = (
                self.client.table("exam_sessions")
                .select("*")
                .eq("user_id", user_id)
                .order("start_time", desc=True)
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)
            return [ExamSession.model_validate(row) for row in data]
        except Exception as e:
            self.telemetry.log_error(f"list_sessions failed for {user_id}", e)
            return []

    @measure_time("sb_save_answer")
    def save_answer(self, answer: SessionAnswer) -> None:
        try:
            self.client.table("session_answers").insert(
                answer.model_dump(mode="json")
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"save_answer failed for {answer.user_id}", e)
            raise RepositoryError("save_answer failed") from e

    def get_session_answers(self, session_id: str) -> list[SessionAnswer]:
        try:
            response = (
                self.client.table("session_answers")
                .select("*")
                .eq("session_id", session_id)
                .order("answered_at")
                .execute()
            )
            data = cast(list[dict[str, Any]], response.data)
            return [SessionAnswer.model_validate(row) for row in data]
        except Exception as e:
            self.telemetry.log_error(f"get_session_answers failed for {session_id}", e)
            return []
