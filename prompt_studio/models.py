"""Data models for credential tracking and image analysis."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class FailureKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT_ERROR = "transient_error"
    FATAL_ERROR = "fatal_error"


def mask_credential(credential: str) -> str:
    """Show the first 8 and last 4 characters; short keys are fully hidden."""
    if len(credential) <= 12:
        return "***"
    return f"{credential[:8]}...{credential[-4:]}"


@dataclass
class CredentialMetrics:
    """Mutable health state of a single API key."""

    credential: str
    usage_count: int = 0
    last_used_at: Optional[datetime] = None
    error_count: int = 0
    blocked: bool = False
    blocked_until: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return (
            self.blocked
            and self.blocked_until is not None
            and now >= self.blocked_until
        )

    def unblock(self) -> None:
        self.blocked = False
        self.blocked_until = None
        self.error_count = 0

    def block(self, until: datetime) -> None:
        self.blocked = True
        self.blocked_until = until

    def masked(self) -> str:
        return mask_credential(self.credential)


@dataclass(frozen=True)
class CredentialView:
    """Read-only, masked projection of CredentialMetrics."""

    masked_credential: str
    usage_count: int
    last_used_at: Optional[datetime]
    blocked: bool
    blocked_until: Optional[datetime]
    error_count: int

    @classmethod
    def from_metrics(cls, metrics: CredentialMetrics) -> "CredentialView":
        return cls(
            masked_credential=metrics.masked(),
            usage_count=metrics.usage_count,
            last_used_at=metrics.last_used_at,
            blocked=metrics.blocked,
            blocked_until=metrics.blocked_until,
            error_count=metrics.error_count,
        )


@dataclass
class User:
    email: str = ""
    id: str = ""
    display_name: Optional[str] = None

    @property
    def first_name(self) -> str:
        """Capitalised first token of the email's local part, e.g. 'Asha'."""
        local_part = self.email.split("@")[0]
        first = local_part.split(".")[0]
        return first[:1].upper() + first[1:] if first else "there"


@dataclass
class Challenge:
    name: str = "Unknown"
    description: str = ""
    id: Optional[str] = None


@dataclass
class AnalysisRequest:
    user: User
    challenge: Challenge
    generated_image_base64: str
    user_prompt: str
    target_image_base64: str


@dataclass
class AnalysisResult:
    similarity_score: int
    feedback: List[str] = field(default_factory=list)
    detailed_analysis: Dict[str, int] = field(
        default_factory=lambda: {
            "colorMatch": 50,
            "shapeMatch": 50,
            "compositionMatch": 50,
            "overallQuality": 50,
        }
    )

    def to_dict(self) -> Dict[str, object]:
        return {
            "similarityScore": self.similarity_score,
            "feedback": list(self.feedback),
            "detailedAnalysis": dict(self.detailed_analysis),
        }


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
