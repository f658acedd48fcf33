from enum import Enum
from typing import Final


class ExamDomain(Enum):
    # Enum Member = ("Domain Label", "Exam")
    ARCHITECTURE = ("アーキテクチャ", "ENCOR")
    VIRTUALIZATION = ("仮想化", "ENCOR")
    INFRASTRUCTURE = ("インフラストラクチャ", "ENCOR")
    ASSURANCE = ("ネットワークアシュアランス", "ENCOR")
    SECURITY = ("セキュリティ", "ENCOR")
    AUTOMATION = ("自動化", "ENCOR")
    LAYER3 = ("レイヤ3テクノロジー", "ENARSI")
    VPN = ("VPNテクノロジー", "ENARSI")
    INFRA_SECURITY = ("インフラのセキュリティ", "ENARSI")
    INFRA_SERVICES = ("インフラのサービス", "ENARSI")

    def __init__(self, label: str, exam: str):
        self.label = label
        self.exam = exam

    @classmethod
    def labels_for(cls, exam: str) -> list[str]:
        """Returns the known domain labels of one exam track."""
        return [d.label for d in cls if d.exam == exam]


class ExamConfig:
    # --- Infrastructure Switch ---
    USE_SQLITE: bool = True
    SQLITE_PATH: Final[str] = "data/exam.db"
    METRICS_PORT: Final[int] = 8000

    # --- Session Rules ---
    DEFAULT_QUESTION_COUNT: Final[int] = 10
    SUPABASE_PAGE_SIZE: Final[int] = 1000

    # --- Selection Scoring ---
    RECENT_WINDOW: Final[int] = 5
    WEAK_ACCURACY_THRESHOLD: Final[float] = 0.7
    HARD_ACCURACY_THRESHOLD: Final[float] = 0.5
    HARD_MIN_GLOBAL_ATTEMPTS: Final[int] = 3
    PRIORITY_SCALE: Final[float] = 1000.0
    RECENT_MISS_BONUS: Final[float] = 500.0
    RANDOM_SPREAD: Final[float] = 100.0
    RANDOM_NOVELTY_BONUS: Final[float] = 50.0

    # --- Mock Exam ---
    # Fixed counts per question type, the rest is Single/Multi
    MOCK_TYPE_QUOTAS: Final[dict[str, dict[str, int]]] = {
        "ENCOR": {"Simulation": 3, "DragDrop": 12},
        "ENARSI": {"Simulation": 4, "DragDrop": 8},
    }
    MOCK_DOMAIN_WEIGHTS: Final[dict[str, dict[str, float]]] = {
        "ENCOR": {
            ExamDomain.ARCHITECTURE.label: 0.15,
            ExamDomain.VIRTUALIZATION.label: 0.10,
            ExamDomain.INFRASTRUCTURE.label: 0.30,
            ExamDomain.ASSURANCE.label: 0.10,
            ExamDomain.SECURITY.label: 0.20,
            ExamDomain.AUTOMATION.label: 0.15,
        },
        "ENARSI": {
            ExamDomain.LAYER3.label: 0.35,
            ExamDomain.VPN.label: 0.20,
            ExamDomain.INFRA_SECURITY.label: 0.20,
            ExamDomain.INFRA_SERVICES.label: 0.25,
        },
    }

    # --- Learner Stats ---
    STATS_RECENT_SESSIONS: Final[int] = 5
    # Study days roll over at midnight in this zone
    STREAK_TIMEZONE: Final[str] = "Asia/Tokyo"
