from datetime import datetime, timezone
from typing import Any

from src.exam.domain.models import (
    AnswerData,
    DragDropPair,
    Option,
    Question,
    QuestionType,
    ValidationResult,
)

PAIR_SEPARATOR = "|"


def validate_answer(question: Question, answer_data: AnswerData) -> ValidationResult:
    """Checks a submitted answer against the question's answer key."""
    match question.question_type:
        case QuestionType.SINGLE:
            return _validate_single(
                question.correct_options, answer_data.selected_options or []
            )
        case QuestionType.MULTI:
            return _validate_multi(
                question.correct_options, answer_data.selected_options or []
            )
        case QuestionType.DRAG_DROP:
            return validate_drag_drop(question.options, answer_data.pairs or [])
        case QuestionType.SIMULATION:
            return _validate_simulation(
                question.simulation_target_json, answer_data.config or {}
            )
        case _:
            return ValidationResult(
                is_correct=False, correct_answer=[], explanation=question.explanation
            )


def _validate_single(correct: list[Option], selected: list[str]) -> ValidationResult:
    correct_ids = {o.id for o in correct}
    return ValidationResult(
        is_correct=len(selected) == 1 and selected[0] in correct_ids,
        correct_answer=[o.text for o in correct],
    )


def _validate_multi(correct: list[Option], selected: list[str]) -> ValidationResult:
    return ValidationResult(
        is_correct={o.id for o in correct} == set(selected),
        correct_answer=[o.text for o in correct],
    )


def parse_pair(text: str) -> DragDropPair:
    """Option text for drag & drop is stored as 'source|target'."""
    parts = (text or "").split(PAIR_SEPARATOR)
    source = parts[0] if parts else ""
    target = parts[1] if len(parts) > 1 else ""
    return DragDropPair(source=source.strip(), target=target.strip())


def validate_drag_drop(
    options: list[Option], user_pairs: list[DragDropPair]
) -> ValidationResult:
    correct_pairs = [parse_pair(o.text) for o in options if o.is_correct]
    submitted = {(p.source, p.target) for p in user_pairs}

    is_correct = len(user_pairs) == len(correct_pairs) and all(
        (cp.source, cp.target) in submitted for cp in correct_pairs
    )
    return ValidationResult(
        is_correct=is_correct,
        correct_answer=[f"{p.source} → {p.target}" for p in correct_pairs],
    )


def _normalize(value: Any) -> str:
    return str(value).lower().strip()


def _validate_simulation(
    target: dict[str, Any] | None, user_config: dict[str, str]
) -> ValidationResult:
    if target is None:
        return ValidationResult(is_correct=False, correct_answer=[])

    # Extra keys in the user's config are fine
    is_correct = all(
        _normalize(user_config.get(key, "")) == _normalize(value)
        for key, value in target.items()
    )
    return ValidationResult(
        is_correct=is_correct,
        correct_answer=[f"{k}: {v}" for k, v in target.items()],
    )


def format_answer_for_storage(
    question_type: QuestionType, answer_data: AnswerData
) -> dict[str, Any]:
    return {
        "type": question_type.value,
        **answer_data.model_dump(mode="json", exclude_none=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
