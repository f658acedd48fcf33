import random

import pytest

from src.exam.domain.models import AnswerHistory, QuestionStats
from src.exam.domain.scoring import (
    HardQuestionsStrategy,
    RandomStrategy,
    StrategyRegistry,
    UnansweredStrategy,
    WeakPointsStrategy,
)


def history_with(recent=None, attempted=(), global_stats=None) -> AnswerHistory:
    history = AnswerHistory(recent=recent or {}, global_stats=global_stats or {})
    for question_id in list(attempted) + list(history.recent):
        history.user_stats.setdefault(question_id, QuestionStats(attempts=1))
    return history


@pytest.fixture
def rng():
    return random.Random(7)


class TestUnanswered:
    def test_binary_boost(self, rng):
        history = history_with(attempted=["Q1"])
        strategy = UnansweredStrategy()

        assert strategy.score("Q1", history, rng) == 0.0
        assert strategy.score("Q2", history, rng) == 1000.0


class TestWeakPoints:
    @pytest.mark.parametrize(
        "recent, expected",
        [
            ([True, True, True, True, True], 0.0),  # perfect
            ([True, True, False, True, True], 0.0),  # 0.8 is above the threshold
            ([True, False, True, False, False], 600.0),
            ([True, False, True], pytest.approx(1000 - 2 / 3 * 1000)),
            ([False], 1500.0),  # single fresh miss
            ([False, False, False, False, True], 1300.0),  # 20% and just missed
        ],
    )
    def test_score(self, rng, recent, expected):
        history = history_with(recent={"Q1": recent})
        assert WeakPointsStrategy().score("Q1", history, rng) == expected

    def test_exactly_threshold_is_weak(self, rng):
        # 0.7 is not reachable with 5 answers, so hand the strategy a longer window
        history = history_with(recent={"Q1": [True] * 7 + [False] * 3})
        assert WeakPointsStrategy().score("Q1", history, rng) == pytest.approx(300.0)

    def test_no_recent_attempts_scores_zero(self, rng):
        assert WeakPointsStrategy().score("Q1", history_with(), rng) == 0.0

    def test_fresh_miss_outranks_consistent_misses(self, rng):
        history = history_with(
            recent={
                "Fresh": [False],
                "Chronic": [False, False, False, False, True],
            }
        )
        strategy = WeakPointsStrategy()
        assert strategy.score("Fresh", history, rng) > strategy.score(
            "Chronic", history, rng
        )


class TestHardQuestions:
    @pytest.mark.parametrize(
        "attempts, correct, expected",
        [
            (2, 0, 0.0),  # cold start
            (3, 0, 1000.0),
            (4, 2, 500.0),
            (3, 2, 0.0),  # 67% is not hard
        ],
    )
    def test_score(self, rng, attempts, correct, expected):
        history = history_with(
            global_stats={"Q1": QuestionStats(attempts=attempts, correct=correct)}
        )
        assert HardQuestionsStrategy().score("Q1", history, rng) == pytest.approx(
            expected
        )

    def test_unknown_question_scores_zero(self, rng):
        assert HardQuestionsStrategy().score("Q9", history_with(), rng) == 0.0


class TestRandom:
    def test_range_and_novelty_bonus(self, rng):
        history = history_with(attempted=["Seen"])
        strategy = RandomStrategy()
        for _ in range(50):
            assert 0.0 <= strategy.score("Seen", history, rng) < 100.0
            assert 50.0 <= strategy.score("New", history, rng) < 150.0


class TestRegistry:
    @pytest.mark.parametrize(
        "mode, expected",
        [
            ("random", RandomStrategy),
            ("weak_points", WeakPointsStrategy),
            ("hard_questions", HardQuestionsStrategy),
            ("unanswered", UnansweredStrategy),
            ("mock_exam", RandomStrategy),
            ("bogus", RandomStrategy),
        ],
    )
    def test_lookup(self, mode, expected):
        assert isinstance(StrategyRegistry.get(mode), expected)
