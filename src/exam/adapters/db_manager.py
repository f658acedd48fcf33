import os
import sqlite3

from src.shared.telemetry import Telemetry, measure_time

SCHEMA: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS questions
    (
        id                     TEXT PRIMARY KEY,
        exam_type              TEXT NOT NULL,
        domain                 TEXT NOT NULL,
        question_text          TEXT NOT NULL,
        question_type          TEXT NOT NULL,
        explanation            TEXT,
        simulation_target_json TEXT,
        is_important           BOOLEAN DEFAULT 0,
        created_at             DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS options
    (
        id          TEXT PRIMARY KEY,
        question_id TEXT NOT NULL REFERENCES questions (id) ON DELETE CASCADE,
        text        TEXT NOT NULL,
        is_correct  BOOLEAN DEFAULT 0,
        sort_order  INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS exam_sessions
    (
        id              TEXT PRIMARY KEY,
        user_id         TEXT NOT NULL,
        exam_type       TEXT NOT NULL,
        challenge_mode  TEXT NOT NULL,
        domain_filter   TEXT,
        question_type   TEXT,
        total_questions INTEGER NOT NULL,
        score           INTEGER DEFAULT 0,
        question_ids    TEXT DEFAULT '[]',
        start_time      DATETIME NOT NULL,
        end_time        DATETIME,
        status          TEXT NOT NULL DEFAULT 'in_progress'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_answers
    (
        id          TEXT PRIMARY KEY,
        session_id  TEXT NOT NULL REFERENCES exam_sessions (id),
        question_id TEXT NOT NULL,
        user_id     TEXT NOT NULL,
        answer_data TEXT DEFAULT '{}',
        is_correct  BOOLEAN NOT NULL,
        answered_at DATETIME NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_answers_user ON session_answers (user_id, answered_at)",
    "CREATE INDEX IF NOT EXISTS idx_options_question ON options (question_id)",
]


class DatabaseManager:
    """
    Responsible for:
    1. Managing the SQLite connection lifecycle.
    2. Initializing the database schema (DDL).
    """

    def __init__(self, db_path: str = "data/exam.db") -> None:
        self.db_path = db_path
        self.telemetry = Telemetry("DatabaseManager")
        self._shared_connection: sqlite3.Connection | None = None

        self._ensure_db_exists()

        # For in-memory DBs, we must keep the connection open immediately
        if self.db_path == ":memory:":
            self._shared_connection = sqlite3.connect(
                ":memory:", check_same_thread=False
            )
            self._shared_connection.execute("PRAGMA foreign_keys=ON")

        self._init_schema()

    def get_connection(self) -> sqlite3.Connection:
        """Returns a usable database connection, reconnecting if necessary."""
        if self._shared_connection:
            try:
                self._shared_connection.execute("SELECT 1")
                return self._shared_connection
            except sqlite3.ProgrammingError:
                # Connection was closed externally
                self._shared_connection = None

        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.execute("PRAGMA foreign_keys=ON")
        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")

        self._shared_connection = conn
        return conn

    def close(self) -> None:
        if self._shared_connection:
            self._shared_connection.close()
            self._shared_connection = None

    def _ensure_db_exists(self) -> None:
        if self.db_path == ":memory:":
            return
        dir_name = os.path.dirname(self.db_path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)

    @measure_time("db_init_schema")
    def _init_schema(self) -> None:
        conn = self.get_connection()
        try:
            for ddl in SCHEMA:
                conn.execute(ddl)
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error("Schema Init Failed", e)
            raise
