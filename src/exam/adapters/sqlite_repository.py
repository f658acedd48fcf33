import json
import sqlite3
from datetime import datetime, timezone
from typing import Any

from src.exam.adapters.db_manager import DatabaseManager
from src.exam.domain.errors import RepositoryError
from src.exam.domain.models import (
    AnswerRecord,
    ExamSession,
    ExamType,
    Option,
    Question,
    QuestionType,
    SessionAnswer,
)
from src.exam.domain.ports import IExamRepository
from src.shared.telemetry import Telemetry, measure_time

QUESTION_COLUMNS = (
    "id, exam_type, domain, question_text, question_type, explanation, "
    "simulation_target_json, is_important, created_at"
)


def _rows(cursor: sqlite3.Cursor) -> list[dict[str, Any]]:
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row, strict=False)) for row in cursor.fetchall()]


def _to_session(row: dict[str, Any]) -> ExamSession:
    row["question_ids"] = json.loads(row["question_ids"] or "[]")
    return ExamSession.model_validate(row)


class SQLiteExamRepository(IExamRepository):
    def __init__(self, db_manager: DatabaseManager) -> None:
        self.telemetry = Telemetry("SQLiteRepository")
        self.db_manager = db_manager

    def _get_connection(self) -> sqlite3.Connection:
        return self.db_manager.get_connection()

    def is_empty(self) -> bool:
        row = self._get_connection().execute("SELECT count(*) FROM questions").fetchone()
        return (row[0] if row else 0) == 0

    # --- Question bank ---

    def seed_questions(self, questions: list[Question]) -> None:
        """Upserts questions together with their options."""
        conn = self._get_connection()
        try:
            for q in questions:
                created_at = q.created_at or datetime.now(timezone.utc)
                conn.execute(
                    f"INSERT INTO questions ({QUESTION_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET "
                    "exam_type = excluded.exam_type, domain = excluded.domain, "
                    "question_text = excluded.question_text, "
                    "question_type = excluded.question_type, "
                    "explanation = excluded.explanation, "
                    "simulation_target_json = excluded.simulation_target_json, "
                    "is_important = excluded.is_important",
                    (
                        q.id,
                        q.exam_type.value,
                        q.domain,
                        q.question_text,
                        q.question_type.value,
                        q.explanation,
                        json.dumps(q.simulation_target_json)
                        if q.simulation_target_json is not None
                        else None,
                        q.is_important,
                        created_at.isoformat(),
                    ),
                )
                conn.execute("DELETE FROM options WHERE question_id = ?", (q.id,))
                conn.executemany(
                    "INSERT INTO options (id, question_id, text, is_correct, sort_order) "
                    "VALUES (?, ?, ?, ?, ?)",
                    [
                        (o.id, q.id, o.text, o.is_correct, o.sort_order)
                        for o in q.options
                    ],
                )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            self.telemetry.log_error("seed_questions failed", e)
            raise RepositoryError("seed_questions failed") from e

    def _attach_options(
        self, conn: sqlite3.Connection, rows: list[dict[str, Any]]
    ) -> list[Question]:
        if not rows:
            return []
        ids = [r["id"] for r in rows]
        placeholders = ",".join(["?"] * len(ids))
        cursor = conn.execute(
            "SELECT id, question_id, text, is_correct, sort_order FROM options "
            f"WHERE question_id IN ({placeholders}) ORDER BY sort_order",
            ids,
        )
        options: dict[str, list[Option]] = {}
        for row in _rows(cursor):
            options.setdefault(row["question_id"], []).append(Option.model_validate(row))

        questions = []
        for row in rows:
            if row["simulation_target_json"]:
                row["simulation_target_json"] = json.loads(row["simulation_target_json"])
            questions.append(
                Question.model_validate({**row, "options": options.get(row["id"], [])})
            )
        return questions

    @measure_time("db_fetch_questions")
    def fetch_questions(
        self,
        exam_type: ExamType,
        domain: str | None = None,
        question_type: QuestionType | None = None,
    ) -> list[Question]:
        clauses: list[str] = []
        params: list[Any] = []
        if exam_type != ExamType.BOTH:
            clauses.append("exam_type = ?")
            params.append(exam_type.value)
        if domain:
            clauses.append("domain = ?")
            params.append(domain)
        if question_type:
            clauses.append("question_type = ?")
            params.append(question_type.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"SELECT {QUESTION_COLUMNS} FROM questions {where} "
                "ORDER BY created_at DESC",
                params,
            )
            return self._attach_options(conn, _rows(cursor))
        except sqlite3.Error as e:
            self.telemetry.log_error("fetch_questions failed", e)
            return []

    def fetch_questions_by_ids(self, question_ids: list[str]) -> list[Question]:
        if not question_ids:
            return []
        placeholders = ",".join(["?"] * len(question_ids))
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                f"SELECT {QUESTION_COLUMNS} FROM questions WHERE id IN ({placeholders})",
                question_ids,
            )
            return self._attach_options(conn, _rows(cursor))
        except sqlite3.Error as e:
            self.telemetry.log_error("fetch_questions_by_ids failed", e)
            return []

    def fetch_domains(self, exam_type: ExamType) -> list[str]:
        sql = "SELECT DISTINCT domain FROM questions"
        params: tuple[str, ...] = ()
        if exam_type != ExamType.BOTH:
            sql += " WHERE exam_type = ?"
            params = (exam_type.value,)
        try:
            rows = self._get_connection().execute(sql, params).fetchall()
            return sorted(row[0] for row in rows)
        except sqlite3.Error as e:
            self.telemetry.log_error("fetch_domains failed", e)
            return []

    # --- Answer history ---

    @measure_time("db_fetch_user_answers")
    def fetch_user_answers(self, user_id: str) -> list[AnswerRecord]:
        try:
            cursor = self._get_connection().execute(
                "SELECT question_id, user_id, is_correct, answered_at "
                "FROM session_answers WHERE user_id = ? ORDER BY answered_at DESC",
                (user_id,),
            )
            return [AnswerRecord.model_validate(r) for r in _rows(cursor)]
        except sqlite3.Error as e:
            self.telemetry.log_error(f"fetch_user_answers failed for {user_id}", e)
            return []

    @measure_time("db_fetch_all_answers")
    def fetch_all_answers(self) -> list[AnswerRecord]:
        try:
            cursor = self._get_connection().execute(
                "SELECT question_id, user_id, is_correct, answered_at FROM session_answers"
            )
            return [AnswerRecord.model_validate(r) for r in _rows(cursor)]
        except sqlite3.Error as e:
            self.telemetry.log_error("fetch_all_answers failed", e)
            return []

    # --- Sessions ---

    def create_session(self, session: ExamSession) -> ExamSession:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO exam_sessions (id, user_id, exam_type, challenge_mode,
                                           domain_filter, question_type, total_questions,
                                           score, question_ids, start_time, end_time,
                                           status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.user_id,
                    session.exam_type.value,
                    session.challenge_mode,
                    session.domain_filter,
                    session.question_type.value if session.question_type else None,
                    session.total_questions,
                    session.score,
                    json.dumps(session.question_ids),
                    session.start_time.isoformat(),
                    session.end_time.isoformat() if session.end_time else None,
                    session.status.value,
                ),
            )
            conn.commit()
            return session
        except sqlite3.Error as e:
            self.telemetry.log_error(f"create_session failed for {session.user_id}", e)
            raise RepositoryError("create_session failed") from e

    def get_session(self, session_id: str) -> ExamSession | None:
        try:
            cursor = self._get_connection().execute(
                "SELECT * FROM exam_sessions WHERE id = ?", (session_id,)
            )
            rows = _rows(cursor)
        except sqlite3.Error as e:
            self.telemetry.log_error(f"get_session failed for {session_id}", e)
            return None
        return _to_session(rows[0]) if rows else None

    def update_session(self, session: ExamSession) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                UPDATE exam_sessions
                SET total_questions = ?,
                    score           = ?,
                    end_time        = ?,
                    status          = ?
                WHERE id = ?
                """,
                (
                    session.total_questions,
                    session.score,
                    session.end_time.isoformat() if session.end_time else None,
                    session.status.value,
                    session.id,
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"update_session failed for {session.id}", e)
            raise RepositoryError("update_session failed") from e

    def list_sessions(self, user_id: str) -> list[ExamSession]:
        try:
            cursor = self._get_connection().execute(
                "SELECT * FROM exam_sessions WHERE user_id = ? ORDER BY start_time DESC",
                (user_id,),
            )
            rows = _rows(cursor)
        except sqlite3.Error as e:
            self.telemetry.log_error(f"list_sessions failed for {user_id}", e)
            return []
        return [_to_session(row) for row in rows]

    @measure_time("db_save_answer")
    def save_answer(self, answer: SessionAnswer) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO session_answers (id, session_id, question_id, user_id,
                                             answer_data, is_correct, answered_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    answer.id,
                    answer.session_id,
                    answer.question_id,
                    answer.user_id,
                    json.dumps(answer.answer_data, ensure_ascii=False),
                    answer.is_correct,
                    answer.answered_at.isoformat(),
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"save_answer failed for {answer.user_id}", e)
            raise RepositoryError("save_answer failed") from e

    def get_session_answers(self, session_id: str) -> list[SessionAnswer]:
        try:
            cursor = self._get_connection().execute(
                "SELECT * FROM session_answers WHERE session_id = ? ORDER BY answered_at",
                (session_id,),
            )
            rows = _rows(cursor)
        except sqlite3.Error as e:
            self.telemetry.log_error(f"get_session_answers failed for {session_id}", e)
            return []
        for row in rows:
            row["answer_data"] = json.loads(row["answer_data"] or "{}")
        return [SessionAnswer.model_validate(row) for row in rows]
