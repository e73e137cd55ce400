import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, Header, HTTPException, status

from conference_attendance.api.deps import get_camera, get_orchestrator, get_store
from conference_attendance.core.exceptions import CaptureError
from conference_attendance.models.verification import PipelineResult, RunStatus
from conference_attendance.schemas import AttendanceRecordResult, VerificationResponse
from conference_attendance.services.attendance_store import SqlAttendanceStore
from conference_attendance.services.camera import CameraTrigger
from conference_attendance.services.orchestrator import AttendanceOrchestrator
from conference_attendance.utils.validation import check_conference_id_format

router = APIRouter()
logger = logging.getLogger(__name__)

PROCESS_COMPLETE = "The process has been completed successfully"
COLLECTION_EMPTY = "The Data for this Conference has not been recorded"
ROSTER_UNAVAILABLE = "Unable to read the conference roster"
NO_CAMERA = "No Camera Detected"
WRONG_CONFERENCE_ID_FORMAT = "Conference Id should be numeric with 5-15 digits"


def require_conference_id(conference_id: str) -> str:
    if not check_conference_id_format(conference_id):
        logger.error(f"{WRONG_CONFERENCE_ID_FORMAT}: {conference_id!r}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=WRONG_CONFERENCE_ID_FORMAT)
    return conference_id


def to_response(result: PipelineResult) -> VerificationResponse:
    if result.status is RunStatus.ROSTER_UNAVAILABLE:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{ROSTER_UNAVAILABLE}: {result.error}",
        )
    if result.status is RunStatus.EMPTY_ROSTER:
        return VerificationResponse.from_result(result, COLLECTION_EMPTY)
    return VerificationResponse.from_result(result, PROCESS_COMPLETE)


@router.post("/camera", response_model=VerificationResponse)
async def handle_camera(
    conf_id: str = Header(..., convert_underscores=False),
    camera: CameraTrigger = Depends(get_camera),
    orchestrator: AttendanceOrchestrator = Depends(get_orchestrator),
):
    """
    Capture the site image, then verify attendance for the conference.
    """
    conference_id = require_conference_id(conf_id)

    try:
        await asyncio.to_thread(camera.capture)
    except CaptureError as e:
        logger.error(f"❌ Camera trigger failed for conference {conference_id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=NO_CAMERA)

    logger.info(f"Camera triggered successfully for conference {conference_id}")
    result = await orchestrator.run_attendance_verification(conference_id)
    return to_response(result)


@router.post("/conferences/{conference_id}/verify", response_model=VerificationResponse)
async def verify_conference(
    conference_id: str,
    orchestrator: AttendanceOrchestrator = Depends(get_orchestrator),
):
    """Verify attendance against the image already captured on disk"""
    require_conference_id(conference_id)
    result = await orchestrator.run_attendance_verification(conference_id)
    return to_response(result)


@router.get("/conferences/{conference_id}/attendance", response_model=List[AttendanceRecordResult])
def list_attendance(
    conference_id: str,
    store: SqlAttendanceStore = Depends(get_store),
):
    require_conference_id(conference_id)
    return store.list_attendance(conference_id)
