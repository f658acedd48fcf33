import argparse
import logging
import os
import sys

from src.config import ExamConfig
from src.exam.adapters.db_manager import DatabaseManager
from src.exam.adapters.sqlite_repository import SQLiteExamRepository
from src.exam.adapters.supabase_repository import SupabaseExamRepository
from src.exam.application.service import ExamService
from src.exam.domain.models import ChallengeMode, ExamType, SelectionRequest, UserStats
from src.exam.domain.ports import IExamRepository
from src.shared.observability import configure_observability


# --- Dependency Injection (Composition Root) ---
def build_repository() -> IExamRepository:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")
    if ExamConfig.USE_SQLITE or not url or not key:
        return SQLiteExamRepository(DatabaseManager(ExamConfig.SQLITE_PATH))
    return SupabaseExamRepository(url, key)


def build_service() -> ExamService:
    return ExamService(build_repository())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ENCOR/ENARSI practice backend")
    parser.add_argument(
        "--exam", choices=[e.value for e in ExamType], default=ExamType.BOTH.value
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("domains", help="List the domains of an exam track")

    select = sub.add_parser("select", help="Preview the questions a user would get")
    select.add_argument("--user", required=True)
    select.add_argument(
        "--mode",
        choices=[m.value for m in ChallengeMode if m != ChallengeMode.MOCK_EXAM],
        default=ChallengeMode.RANDOM.value,
    )
    select.add_argument("--domain")
    select.add_argument("--count", type=int, default=ExamConfig.DEFAULT_QUESTION_COUNT)

    stats = sub.add_parser("stats", help="Show a learner's accuracy and streak")
    stats.add_argument("--user", required=True)
    return parser


def print_stats(stats: UserStats) -> None:
    print(f"sessions\t{stats.completed_sessions}")
    print(f"accuracy\t{stats.accuracy:.0%} ({stats.correct_answers}/{stats.total_answers})")
    print(f"recent score\t{stats.average_recent_score:.0%}")
    print(f"streak\t{stats.streak_days} days")
    for stat in stats.by_domain:
        print(f"domain\t{stat.key}\t{stat.accuracy:.0%} ({stat.correct}/{stat.total})")


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    args = build_parser().parse_args(argv)
    configure_observability()

    service = build_service()
    exam_type = ExamType(args.exam)

    if args.command == "domains":
        for domain in service.get_exam_domains(exam_type):
            print(domain)
        return 0

    if args.command == "stats":
        print_stats(service.get_user_stats(args.user))
        return 0

    questions = service.select_questions(
        SelectionRequest(
            user_id=args.user,
            exam_type=exam_type,
            mode=args.mode,
            domain=args.domain,
            count=max(args.count, 0),
        )
    )
    if not questions:
        print("No questions available for this selection.")
        return 1
    for q in questions:
        print(f"{q.id}\t{q.question_type.value}\t{q.domain}\t{q.question_text[:60]}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
