import math
import random
from collections.abc import Callable

from src.config import ExamConfig
from src.exam.domain.models import ExamType, Question, QuestionType
from src.shared.telemetry import Telemetry

SELECT_TYPES = (QuestionType.SINGLE, QuestionType.MULTI)


def _matches_domain(question: Question, label: str) -> bool:
    # Substring match ignoring case, stored labels vary in prefix and ASCII case
    return label.lower() in question.domain.lower()


class MockExamComposer:
    """
    Pure Domain Logic.
    Builds a full-length mock exam that mirrors the real blueprint: fixed
    quotas of simulations and drag & drops, then Single/Multi questions spread
    over the domains by weight.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()
        self.telemetry = Telemetry("MockExamComposer")

    def compose(
        self, pool: list[Question], exam_type: ExamType, total: int
    ) -> list[Question]:
        quotas = ExamConfig.MOCK_TYPE_QUOTAS.get(exam_type.value)
        weights = ExamConfig.MOCK_DOMAIN_WEIGHTS.get(exam_type.value)
        if quotas is None or weights is None or total <= 0:
            self.telemetry.log_warning(
                "No mock exam blueprint", exam_type=exam_type.value, total=total
            )
            return []

        pool = [q for q in pool if q.exam_type == exam_type]
        selected: list[Question] = []
        used: set[str] = set()

        def pick(accept: Callable[[Question], bool], needed: int) -> None:
            needed = min(needed, total - len(selected))
            if needed <= 0:
                return
            eligible = [q for q in pool if q.id not in used and accept(q)]
            important = [q for q in eligible if q.is_important]
            normal = [q for q in eligible if not q.is_important]
            self.rng.shuffle(normal)
            for q in (important + normal)[:needed]:
                selected.append(q)
                used.add(q.id)

        # 1. Fixed quotas per type
        for q_type, quota in quotas.items():
            pick(lambda q, t=q_type: q.question_type.value == t, quota)

        # 2. Single/Multi by domain weight
        remaining = total - len(selected)
        for domain, weight in weights.items():
            pick(
                lambda q, d=domain: q.question_type in SELECT_TYPES
                and _matches_domain(q, d),
                math.floor(remaining * weight),
            )

        # 3. Backfill from any domain
        pick(lambda q: q.question_type in SELECT_TYPES, total - len(selected))

        self.telemetry.log_info(
            "Mock exam composed",
            exam_type=exam_type.value,
            requested=total,
            composed=len(selected),
        )

        self.rng.shuffle(selected)
        return selected
