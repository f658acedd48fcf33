import random

import pytest

from src.exam.domain.models import AnswerHistory, ChallengeMode
from src.exam.domain.question_selector import QuestionSelector, summarize_history
from tests.factories import make_answers, make_question


@pytest.fixture
def selector():
    return QuestionSelector(random.Random(42))


def pool_of(n: int):
    return [make_question(f"Q{i}", minutes=-i) for i in range(n)]


class TestSummarizeHistory:
    def test_counts_lifetime_attempts_and_accuracy(self):
        history = summarize_history(make_answers("Q1", [True, False, True, True]), [])

        stats = history.user_stats["Q1"]
        assert stats.attempts == 4
        assert stats.correct == 3
        assert stats.accuracy == pytest.approx(0.75)

    def test_recent_window_keeps_five_newest(self):
        results = [False, False, True, True, True, True, True]
        history = summarize_history(make_answers("Q1", results), [])

        assert history.recent["Q1"] == [False, False, True, True, True]
        assert history.user_stats["Q1"].attempts == 7

    def test_orders_history_newest_first_regardless_of_input(self):
        answers = make_answers("Q1", [False, True, True])
        history = summarize_history(reversed(answers), [])

        assert history.last_answer_correct("Q1") is False

    def test_global_stats_are_separate_from_user_stats(self):
        others = make_answers("Q2", [False, False, True], user_id="someone-else")
        history = summarize_history([], others)

        assert not history.has_attempted("Q2")
        assert history.global_stats["Q2"].attempts == 3
        assert history.global_stats["Q2"].correct == 1

    def test_empty_history(self):
        history = summarize_history([], [])
        assert history.user_stats == {}
        assert history.last_answer_correct("Q1") is None


class TestSelectBounds:
    @pytest.mark.parametrize("count", [0, 1, 5, 10, 25])
    def test_length_is_min_of_count_and_pool(self, selector, count):
        pool = pool_of(10)
        result = selector.select(pool, AnswerHistory(), ChallengeMode.RANDOM.value, count)
        assert len(result) == min(count, len(pool))

    def test_negative_count_returns_empty(self, selector):
        assert selector.select(pool_of(3), AnswerHistory(), "random", -1) == []

    def test_output_is_subset_of_pool(self, selector):
        pool = pool_of(10)
        pool_ids = {q.id for q in pool}
        for mode in ChallengeMode:
            result = selector.select(pool, AnswerHistory(), mode.value, 4)
            assert {q.id for q in result} <= pool_ids
            assert len({q.id for q in result}) == len(result)

    def test_empty_pool_returns_empty(self, selector):
        assert selector.select([], AnswerHistory(), "unanswered", 5) == []

    def test_questions_keep_their_options(self, selector):
        result = selector.select(pool_of(2), AnswerHistory(), "random", 2)
        assert all(len(q.options) == 2 for q in result)


class TestModes:
    def test_unanswered_only_serves_unseen_questions(self, selector):
        """GIVEN 6 answered and 6 unseen WHEN asking for 5 THEN all 5 are unseen."""
        pool = pool_of(12)
        answered = [a for q in pool[:6] for a in make_answers(q.id, [True])]
        history = summarize_history(answered, answered)

        for _ in range(10):
            result = selector.select(pool, history, "unanswered", 5)
            assert {q.id for q in result} <= {q.id for q in pool[6:]}

    def test_scenario_new_user_unanswered(self, selector):
        pool = pool_of(10)
        result = selector.select(pool, AnswerHistory(), "unanswered", 5)

        assert len(result) == 5
        assert {q.id for q in result} <= {q.id for q in pool}

    def test_weak_points_prefers_low_recent_accuracy(self, selector):
        """Q1 recent accuracy 0.4, Q2 perfect, Q3 never attempted."""
        pool = [make_question("Q1"), make_question("Q2"), make_question("Q3")]
        answers = make_answers("Q1", [True, True, False, False, False]) + make_answers(
            "Q2", [True, True, True, True, True]
        )
        history = summarize_history(answers, answers)

        scored = {s.question.id: s.score for s in selector.score_all(pool, history, "weak_points")}
        assert scored == {"Q1": pytest.approx(600.0), "Q2": 0.0, "Q3": 0.0}

        for _ in range(10):
            result = selector.select(pool, history, "weak_points", 1)
            assert [q.id for q in result] == ["Q1"]

    def test_weak_points_deprioritizes_perfect_streak(self, selector):
        pool = [make_question(f"Q{i}") for i in range(4)]
        answers = (
            make_answers("Q0", [True] * 5)
            + make_answers("Q1", [True] * 5)
            + make_answers("Q2", [True, False, True, False, False])
            + make_answers("Q3", [True] * 5)
        )
        history = summarize_history(answers, answers)

        result = selector.select(pool, history, "weak_points", 2)
        assert "Q2" in {q.id for q in result}

    def test_hard_questions_scores_only_after_three_global_attempts(self, selector):
        pool = [make_question("Cold"), make_question("Hard")]
        everyone = make_answers("Cold", [False, False], user_id="u2") + make_answers(
            "Hard", [False, True, False], user_id="u3"
        )
        history = summarize_history([], everyone)

        scored = {
            s.question.id: s.score
            for s in selector.score_all(pool, history, "hard_questions")
        }
        assert scored["Cold"] == 0.0
        assert scored["Hard"] > 0.0

    def test_random_mode_boosts_unseen(self, selector):
        pool = [make_question("Seen"), make_question("New")]
        answers = make_answers("Seen", [True])
        history = summarize_history(answers, answers)

        scored = {s.question.id: s.score for s in selector.score_all(pool, history, "random")}
        assert 0.0 <= scored["Seen"] < 100.0
        assert 50.0 <= scored["New"] < 150.0

    def test_unknown_mode_falls_back_to_random(self, selector):
        pool = pool_of(5)
        scores = [s.score for s in selector.score_all(pool, AnswerHistory(), "no_such_mode")]
        assert all(50.0 <= s < 150.0 for s in scores)

    def test_domain_filter_with_no_match_gives_empty(self, selector):
        pool = [q for q in pool_of(5) if q.domain == "does-not-exist"]
        assert selector.select(pool, AnswerHistory(), "random", 5) == []


class TestPresentationOrder:
    def test_final_order_is_shuffled(self):
        """Same inputs, different presentation orders."""
        selector = QuestionSelector()
        pool = pool_of(10)

        orders = {
            tuple(q.id for q in selector.select(pool, AnswerHistory(), "unanswered", 5))
            for _ in range(20)
        }
        assert len(orders) > 1, "Results should vary due to the final shuffle"

    def test_shuffle_does_not_change_members_when_scores_are_distinct(self):
        selector = QuestionSelector()
        pool = pool_of(10)
        answers = [a for q in pool[5:] for a in make_answers(q.id, [True])]
        history = summarize_history(answers, answers)

        members = {
            frozenset(q.id for q in selector.select(pool, history, "unanswered", 5))
            for _ in range(10)
        }
        assert members == {frozenset(q.id for q in pool[:5])}
