from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from src.config import ExamConfig
from src.exam.domain.models import (
    AccuracyStat,
    AnswerRecord,
    ExamSession,
    Question,
    SessionStatus,
    UserStats,
)


def study_day(moment: datetime, tz: ZoneInfo) -> date:
    # Naive timestamps from the store are UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()


def accuracy_by(
    answers: Iterable[AnswerRecord],
    questions: dict[str, Question],
    key: Callable[[Question], str],
) -> list[AccuracyStat]:
    """Groups answers by a question attribute, weakest group first."""
    groups: dict[str, AccuracyStat] = {}
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            continue
        stat = groups.setdefault(key(question), AccuracyStat(key=key(question)))
        stat.total += 1
        if answer.is_correct:
            stat.correct += 1
    return sorted(groups.values(), key=lambda s: (s.accuracy, s.key))


def study_streak(end_times: Iterable[datetime], today: date, tz: ZoneInfo) -> int:
    """
    Consecutive study days ending today or yesterday.
    A streak whose latest day is older than yesterday is broken.
    """
    days = sorted({study_day(t, tz) for t in end_times}, reverse=True)
    if not days or days[0] < today - timedelta(days=1):
        return 0

    streak = 1
    expected = days[0]
    for day in days[1:]:
        expected -= timedelta(days=1)
        if day != expected:
            break
        streak += 1
    return streak


def average_recent_score(sessions: list[ExamSession], limit: int) -> float:
    ended = [s for s in sessions if s.end_time is not None]
    recent = sorted(ended, key=lambda s: s.end_time, reverse=True)[:limit]
    if not recent:
        return 0.0
    ratios = [s.score / s.total_questions if s.total_questions else 0.0 for s in recent]
    return sum(ratios) / len(ratios)


def build_user_stats(
    user_id: str,
    answers: list[AnswerRecord],
    questions: dict[str, Question],
    sessions: list[ExamSession],
    now: datetime,
) -> UserStats:
    """
    Pure Domain Logic.
    Accuracy overall and per domain, question type and exam, plus progress
    figures taken from the user's completed sessions.
    """
    tz = ZoneInfo(ExamConfig.STREAK_TIMEZONE)
    completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
    answered = [a for a in answers if a.question_id in questions]

    return UserStats(
        user_id=user_id,
        completed_sessions=len(completed),
        total_answers=len(answered),
        correct_answers=sum(1 for a in answered if a.is_correct),
        average_recent_score=average_recent_score(
            completed, ExamConfig.STATS_RECENT_SESSIONS
        ),
        streak_days=study_streak(
            [s.end_time for s in completed if s.end_time is not None],
            study_day(now, tz),
            tz,
        ),
        by_domain=accuracy_by(answered, questions, lambda q: q.domain),
        by_question_type=accuracy_by(answered, questions, lambda q: q.question_type.value),
        by_exam=accuracy_by(answered, questions, lambda q: q.exam_type.value),
    )
