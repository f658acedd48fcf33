import random
from collections.abc import Iterable

from src.config import ExamConfig
from src.exam.domain.models import (
    AnswerHistory,
    AnswerRecord,
    Question,
    QuestionStats,
    ScoredQuestion,
)
from src.exam.domain.scoring import StrategyRegistry
from src.shared.telemetry import Telemetry


def summarize_history(
    user_answers: Iterable[AnswerRecord], global_answers: Iterable[AnswerRecord]
) -> AnswerHistory:
    """
    Builds the per-question aggregates used for scoring.
    The user's answers are ordered newest first here, whatever order they came in.
    """
    history = AnswerHistory()

    ordered = sorted(user_answers, key=lambda a: a.answered_at, reverse=True)
    for answer in ordered:
        history.user_stats.setdefault(answer.question_id, QuestionStats()).record(
            answer.is_correct
        )
        window = history.recent.setdefault(answer.question_id, [])
        if len(window) < ExamConfig.RECENT_WINDOW:
            window.append(answer.is_correct)

    for answer in global_answers:
        history.global_stats.setdefault(answer.question_id, QuestionStats()).record(
            answer.is_correct
        )

    return history


class QuestionSelector:
    """
    Pure Domain Logic.
    Scores the candidate pool for a challenge mode, keeps the best `count`
    and returns them in random order.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self.telemetry = Telemetry("QuestionSelector")

    def score_all(
        self, candidates: list[Question], history: AnswerHistory, mode: str
    ) -> list[ScoredQuestion]:
        strategy = StrategyRegistry.get(mode)
        return [
            ScoredQuestion(question=q, score=strategy.score(q.id, history, self.rng))
            for q in candidates
        ]

    def select(
        self,
        candidates: list[Question],
        history: AnswerHistory,
        mode: str,
        count: int,
    ) -> list[Question]:
        if not candidates or count <= 0:
            return []

        scored = self.score_all(candidates, history, mode)
        # sorted() is stable, so ties keep the pool order
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        selected = [s.question for s in ranked[:count]]

        self.telemetry.log_info(
            "Questions scored",
            mode=mode,
            pool=len(candidates),
            selected=len(selected),
            top_score=ranked[0].score,
        )

        # Presentation order must not reveal the ranking
        self.rng.shuffle(selected)
        return selected
