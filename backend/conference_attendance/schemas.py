from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from conference_attendance.models.verification import PipelineResult


class ParticipantOutcomeResult(BaseModel):
    user_id: str
    status: str
    detail: Optional[str] = None
    error_kind: Optional[str] = None


class VerificationResponse(BaseModel):
    conference_id: str
    status: str  # "completed", "empty_roster" or "roster_unavailable"
    response: str
    outcomes: List[ParticipantOutcomeResult] = []
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: PipelineResult, message: str) -> "VerificationResponse":
        return cls(
            conference_id=result.conference_id,
            status=result.status.value,
            response=message,
            outcomes=[
                ParticipantOutcomeResult(
                    user_id=outcome.user_id,
                    status=outcome.status.value,
                    detail=outcome.detail,
                    error_kind=outcome.error_kind,
                )
                for outcome in result.outcomes
            ],
            error=result.error,
        )


class AttendanceRecordResult(BaseModel):
    conference_id: str
    user_id: str
    status: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
