from conference_attendance.models.attendance import AttendanceRecord, AttendanceStatus
from conference_attendance.models.conference import Conference, ConferenceStatus
from conference_attendance.models.images import Image, InlineImage, StorageImage
from conference_attendance.models.participant import Participant
from conference_attendance.models.verification import (
    AbsenceMark,
    ComparisonVerdict,
    MarkResult,
    NotificationOutcome,
    ParticipantOutcome,
    ParticipantStatus,
    PipelineResult,
    RunStatus,
)

__all__ = [
    "AbsenceMark",
    "AttendanceRecord",
    "AttendanceStatus",
    "ComparisonVerdict",
    "Conference",
    "ConferenceStatus",
    "Image",
    "InlineImage",
    "MarkResult",
    "NotificationOutcome",
    "Participant",
    "ParticipantOutcome",
    "ParticipantStatus",
    "PipelineResult",
    "RunStatus",
    "StorageImage",
]
