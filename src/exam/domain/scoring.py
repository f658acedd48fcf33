import random
from abc import ABC, abstractmethod

from src.config import ExamConfig
from src.exam.domain.models import AnswerHistory, ChallengeMode


# --- Interface ---
class IScoringStrategy(ABC):
    """Priority of one question under a challenge mode. Higher is served first."""

    @abstractmethod
    def score(
        self, question_id: str, history: AnswerHistory, rng: random.Random
    ) -> float:
        pass


# --- Concrete Strategies ---


class UnansweredStrategy(IScoringStrategy):
    def score(
        self, question_id: str, history: AnswerHistory, rng: random.Random
    ) -> float:
        if history.has_attempted(question_id):
            return 0.0
        return ExamConfig.PRIORITY_SCALE


class WeakPointsStrategy(IScoringStrategy):
    """
    Low accuracy over the recent window raises priority linearly, and a miss
    on the latest attempt adds a flat bonus on top.
    """

    def score(
        self, question_id: str, history: AnswerHistory, rng: random.Random
    ) -> float:
        recent = history.recent.get(question_id)
        if not recent:
            return 0.0

        score = 0.0
        recent_accuracy = sum(recent) / len(recent)
        if recent_accuracy <= ExamConfig.WEAK_ACCURACY_THRESHOLD:
            score = ExamConfig.PRIORITY_SCALE - recent_accuracy * ExamConfig.PRIORITY_SCALE

        if history.last_answer_correct(question_id) is False:
            score += ExamConfig.RECENT_MISS_BONUS
        return score


class HardQuestionsStrategy(IScoringStrategy):
    def score(
        self, question_id: str, history: AnswerHistory, rng: random.Random
    ) -> float:
        stats = history.global_stats.get(question_id)
        # Too few attempts to call a question hard
        if not stats or stats.attempts < ExamConfig.HARD_MIN_GLOBAL_ATTEMPTS:
            return 0.0
        if stats.accuracy > ExamConfig.HARD_ACCURACY_THRESHOLD:
            return 0.0
        return ExamConfig.PRIORITY_SCALE - stats.accuracy * ExamConfig.PRIORITY_SCALE


class RandomStrategy(IScoringStrategy):
    def score(
        self, question_id: str, history: AnswerHistory, rng: random.Random
    ) -> float:
        score = rng.random() * ExamConfig.RANDOM_SPREAD
        if not history.has_attempted(question_id):
            score += ExamConfig.RANDOM_NOVELTY_BONUS
        return score


# --- Registry ---
class StrategyRegistry:
    _strategies: dict[str, IScoringStrategy] = {}

    @classmethod
    def register(cls, name: str, strategy: IScoringStrategy) -> None:
        cls._strategies[name] = strategy

    @classmethod
    def get(cls, name: str) -> IScoringStrategy:
        """Unknown modes fall back to random."""
        return cls._strategies.get(name, cls._strategies[ChallengeMode.RANDOM.value])


StrategyRegistry.register(ChallengeMode.RANDOM.value, RandomStrategy())
StrategyRegistry.register(ChallengeMode.WEAK_POINTS.value, WeakPointsStrategy())
StrategyRegistry.register(ChallengeMode.HARD_QUESTIONS.value, HardQuestionsStrategy())
StrategyRegistry.register(ChallengeMode.UNANSWERED.value, UnansweredStrategy())
