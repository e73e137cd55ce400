from functools import lru_cache

from conference_attendance.core.config import settings
from conference_attendance.db.session import SessionLocal
from conference_attendance.services import build_camera, build_orchestrator
from conference_attendance.services.attendance_store import SqlAttendanceStore
from conference_attendance.services.camera import CameraTrigger
from conference_attendance.services.orchestrator import AttendanceOrchestrator


@lru_cache()
def get_orchestrator() -> AttendanceOrchestrator:
    """Dependency for the verification pipeline (built once per process)"""
    return build_orchestrator(settings)


@lru_cache()
def get_camera() -> CameraTrigger:
    return build_camera(settings)


def get_store() -> SqlAttendanceStore:
    return SqlAttendanceStore(SessionLocal)
