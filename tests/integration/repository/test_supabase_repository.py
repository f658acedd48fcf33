from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from src.exam.adapters.supabase_repository import SupabaseExamRepository
from src.exam.domain.errors import RepositoryError
from src.exam.domain.models import ExamSession, ExamType
from tests.factories import make_answers, make_question


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.calls: list[tuple] = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        return SimpleNamespace(data=self.pages.pop(0) if self.pages else [])

    def called(self, name):
        return [args for n, args, _ in self.calls if n == name]


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def repo(client):
    with patch(
        "src.exam.adapters.supabase_repository.create_client", return_value=client
    ):
        yield SupabaseExamRepository("https://example.supabase.co", "key")


def question_row(id: str) -> dict:
    return make_question(id).model_dump(mode="json")


def test_fetch_questions_filters_by_exam_and_domain(repo, client):
    query = FakeQuery([[question_row("Q1")]])
    client.table.return_value = query

    questions = repo.fetch_questions(ExamType.ENCOR, "自動化")

    assert [q.id for q in questions] == ["Q1"]
    assert len(questions[0].options) == 2
    assert query.called("select") == [("*, options(*)",)]
    assert query.called("eq") == [("exam_type", "ENCOR"), ("domain", "自動化")]


def test_both_skips_exam_filter(repo, client):
    query = FakeQuery([[]])
    client.table.return_value = query

    assert repo.fetch_questions(ExamType.BOTH) == []
    assert query.called("eq") == []


def test_fetch_failure_returns_empty(repo, client):
    client.table.side_effect = RuntimeError("network")
    assert repo.fetch_questions(ExamType.ENCOR) == []
    assert repo.fetch_all_answers() == []


def test_answer_history_walks_all_pages(repo, client):
    rows = [a.model_dump(mode="json") for a in make_answers("Q1", [True] * 5)]
    query = FakeQuery([rows[0:2], rows[2:4], rows[4:]])
    client.table.return_value = query

    with patch("src.config.ExamConfig.SUPABASE_PAGE_SIZE", 2):
        answers = repo.fetch_user_answers("user-1")

    assert len(answers) == 5
    assert query.called("range") == [(0, 1), (2, 3), (4, 5)]


def test_domains_are_unique_and_sorted(repo, client):
    client.table.return_value = FakeQuery(
        [[{"domain": "自動化"}, {"domain": "セキュリティ"}, {"domain": "自動化"}]]
    )
    assert repo.fetch_domains(ExamType.ENCOR) == sorted(["自動化", "セキュリティ"])


def test_write_failures_raise(repo, client):
    client.table.side_effect = RuntimeError("insert rejected")
    session = MagicMock()
    session.model_dump.return_value = {}

    with pytest.raises(RepositoryError):
        repo.update_session(session)


def test_create_session_stores_served_question_ids(repo, client):
    query = FakeQuery([[]])
    client.table.return_value = query
    session = ExamSession(
        id="S1",
        user_id="user-1",
        exam_type=ExamType.ENARSI,
        challenge_mode="mock_exam",
        total_questions=2,
        question_ids=["Q2", "Q1"],
        start_time=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )

    assert repo.create_session(session) is session

    client.table.assert_called_with("exam_sessions")
    (payload,) = query.called("insert")[0]
    assert payload["question_ids"] == ["Q2", "Q1"]
    assert payload["status"] == "in_progress"
    assert payload["start_time"].startswith("2026-03-01")
