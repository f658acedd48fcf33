import random

import pytest

from src.exam.adapters.db_manager import DatabaseManager
from src.exam.adapters.sqlite_repository import SQLiteExamRepository
from tests.factories import make_question


@pytest.fixture
def sample_question():
    return make_question("Q1")


@pytest.fixture
def sample_user_id():
    return "test_user"


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def in_memory_repo():
    """Returns a clean, empty in-memory repository."""
    db_manager = DatabaseManager(db_path=":memory:")
    repo = SQLiteExamRepository(db_manager=db_manager)
    yield repo
    db_manager.close()


@pytest.fixture
def populated_repo(in_memory_repo, sample_question):
    """Returns a repo pre-filled with one sample question."""
    in_memory_repo.seed_questions([sample_question])
    return in_memory_repo
