"""
Result types exchanged inside the verification pipeline.

None of these are persisted: verdicts are consumed as soon as they are
produced, and the aggregated PipelineResult is handed back to the caller.
"""
import enum
from dataclasses import dataclass, field
from typing import List, Optional


class ComparisonVerdict(str, enum.Enum):
    SIMILAR = "similar"
    DIFFERENT = "different"
    INDETERMINATE = "indeterminate"


class MarkResult(str, enum.Enum):
    UPDATED = "updated"
    ALREADY_PRESENT = "already_present"
    ALREADY_ABSENT = "already_absent"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class AbsenceMark:
    result: MarkResult
    email: Optional[str] = None


@dataclass(frozen=True)
class NotificationOutcome:
    delivered: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "NotificationOutcome":
        return cls(delivered=True)

    @classmethod
    def failure(cls, reason: str) -> "NotificationOutcome":
        return cls(delivered=False, reason=reason)


class ParticipantStatus(str, enum.Enum):
    MARKED_PRESENT = "marked_present"
    ALREADY_PRESENT = "already_present"
    MARKED_ABSENT_AND_NOTIFIED = "marked_absent_and_notified"
    MARKED_ABSENT_NOTIFICATION_FAILED = "marked_absent_notification_failed"
    COMPARISON_FAILED = "comparison_failed"


@dataclass(frozen=True)
class ParticipantOutcome:
    user_id: str
    status: ParticipantStatus
    detail: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is ParticipantStatus.COMPARISON_FAILED


class RunStatus(str, enum.Enum):
    EMPTY_ROSTER = "empty_roster"
    COMPLETED = "completed"
    ROSTER_UNAVAILABLE = "roster_unavailable"


@dataclass(frozen=True)
class PipelineResult:
    conference_id: str
    status: RunStatus
    outcomes: List[ParticipantOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def empty_roster(cls, conference_id: str) -> "PipelineResult":
        return cls(conference_id=conference_id, status=RunStatus.EMPTY_ROSTER)

    @classmethod
    def completed(cls, conference_id: str, outcomes: List[ParticipantOutcome]) -> "PipelineResult":
        return cls(conference_id=conference_id, status=RunStatus.COMPLETED, outcomes=list(outcomes))

    @classmethod
    def roster_unavailable(cls, conference_id: str, error: str) -> "PipelineResult":
        return cls(conference_id=conference_id, status=RunStatus.ROSTER_UNAVAILABLE, error=error)

    def outcome_for(self, user_id: str) -> Optional[ParticipantOutcome]:
        for outcome in self.outcomes:
            if outcome.user_id == user_id:
                return outcome
        return None
