import os
import threading
import time
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

# Keep the module-level engine away from the production database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from conference_attendance.core.config import PipelineConfig
from conference_attendance.core.exceptions import RosterUnavailable, SourceImageNotFound, StoreWriteFailure
from conference_attendance.db.base import Base
from conference_attendance.db.session import create_db_engine, create_session_factory
from conference_attendance.models import (
    AbsenceMark,
    AttendanceRecord,
    AttendanceStatus,
    ComparisonVerdict,
    Conference,
    InlineImage,
    MarkResult,
    NotificationOutcome,
    Participant,
    StorageImage,
)
from conference_attendance.services.attendance_store import AttendanceStore, SqlAttendanceStore
from conference_attendance.services.face_comparison import FaceComparisonGateway
from conference_attendance.services.image_source import ImageSource
from conference_attendance.services.notification import NotificationGateway
from conference_attendance.services.orchestrator import AttendanceOrchestrator

CONFERENCE_ID = "123456789"
REFERENCE_BUCKET = "reference-images"


class FakeStore(AttendanceStore):
    """In-memory roster keyed by user id: {user_id: (status, email)}"""

    def __init__(
        self,
        records: Optional[Dict[str, Tuple[str, Optional[str]]]] = None,
        roster: Optional[List[str]] = None,
        fail_listing: bool = False,
        failing_writes: Iterable[str] = (),
    ):
        self.records = dict(records or {})
        self.roster = roster if roster is not None else list(self.records)
        self.fail_listing = fail_listing
        self.failing_writes = set(failing_writes)
        self.calls: List[Tuple[str, str]] = []
        self.completed: List[str] = []
        self._lock = threading.Lock()

    def list_registered_user_ids(self, conference_id):
        self.calls.append(("list", conference_id))
        if self.fail_listing:
            raise RosterUnavailable("Database connection disrupted")
        return list(self.roster)

    def _write(self, user_id, status):
        if user_id in self.failing_writes:
            raise StoreWriteFailure(f"Unable to update data for {user_id}")
        with self._lock:
            if user_id not in self.records:
                return None, None
            previous, email = self.records[user_id]
            self.records[user_id] = (status, email)
            return previous, email

    def mark_present(self, conference_id, user_id):
        self.calls.append(("mark_present", user_id))
        previous, _ = self._write(user_id, "present")
        if previous is None:
            return MarkResult.NOT_FOUND
        if previous == "present":
            return MarkResult.ALREADY_PRESENT
        return MarkResult.UPDATED

    def mark_absent(self, conference_id, user_id):
        self.calls.append(("mark_absent", user_id))
        previous, email = self._write(user_id, "absent")
        if previous is None:
            return AbsenceMark(MarkResult.NOT_FOUND)
        if previous == "absent":
            return AbsenceMark(MarkResult.ALREADY_ABSENT, email)
        return AbsenceMark(MarkResult.UPDATED, email)

    def mark_conference_completed(self, conference_id):
        self.completed.append(conference_id)
        return True

    def status_of(self, user_id):
        return self.records[user_id][0]

    @property
    def write_calls(self):
        return [call for call in self.calls if call[0] != "list"]


class FakeGateway(FaceComparisonGateway):
    """Answers per reference key; an answer may be a verdict or an exception to raise"""

    def __init__(self, verdicts=None, default=ComparisonVerdict.DIFFERENT, delays=None):
        self.verdicts = dict(verdicts or {})
        self.default = default
        self.delays = dict(delays or {})
        self.calls: List[Tuple[object, object, float]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def compare(self, reference_image, captured_image, similarity_threshold=75.0):
        key = getattr(reference_image, "key", None)
        with self._lock:
            self.calls.append((reference_image, captured_image, similarity_threshold))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            delay = self.delays.get(key, self.delays.get("*", 0.0))
            if delay:
                time.sleep(delay)
            answer = self.verdicts.get(key, self.default)
            if isinstance(answer, Exception):
                raise answer
            return answer
        finally:
            with self._lock:
                self.active -= 1


class FakeImages(ImageSource):
    def __init__(self, missing_references: Iterable[str] = (), captured_error: Optional[Exception] = None):
        self.missing_references = set(missing_references)
        self.captured_error = captured_error
        self.reference_calls: List[str] = []
        self.captured_calls = 0

    def fetch_reference(self, user_id):
        self.reference_calls.append(user_id)
        if user_id in self.missing_references:
            raise SourceImageNotFound(f"Image key not found in storage: {user_id}")
        return StorageImage(REFERENCE_BUCKET, user_id)

    def fetch_captured(self):
        self.captured_calls += 1
        if self.captured_error is not None:
            raise self.captured_error
        return InlineImage(b"captured-site-image")


class FakeNotifier(NotificationGateway):
    def __init__(self, failing: Iterable[str] = (), raises: bool = False):
        self.failing = set(failing)
        self.raises = raises
        self.sent: List[Optional[str]] = []

    def notify(self, recipient_email):
        self.sent.append(recipient_email)
        if self.raises:
            raise RuntimeError("mail transport exploded")
        if recipient_email in self.failing:
            return NotificationOutcome.failure("Invalid Email")
        return NotificationOutcome.success()


@pytest.fixture
def make_orchestrator():
    def factory(store, gateway=None, images=None, notifier=None, **config):
        return AttendanceOrchestrator(
            store=store,
            gateway=gateway or FakeGateway(),
            images=images or FakeImages(),
            notifier=notifier or FakeNotifier(),
            config=PipelineConfig(**config),
        )

    return factory


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'attendance.db'}")
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlAttendanceStore(session_factory)


@pytest.fixture
def seed(session_factory):
    """Insert a conference plus participants: seed({user_id: (status, email)})"""

    def insert(participants: Dict[str, Tuple[str, Optional[str]]], conference_id: str = CONFERENCE_ID):
        db = session_factory()
        try:
            if not db.query(Conference).filter(Conference.conference_id == conference_id).first():
                db.add(Conference(conference_id=conference_id, name="RustConf", scheduled_date=date(2019, 3, 1)))
            for user_id, (status, email) in participants.items():
                if not db.query(Participant).filter(Participant.user_id == user_id).first():
                    db.add(Participant(user_id=user_id, email=email or f"{user_id}@example.com"))
                db.add(AttendanceRecord(
                    conference_id=conference_id,
                    user_id=user_id,
                    status=status,
                    email=email,
                ))
            db.commit()
        finally:
            db.close()

    return insert


@pytest.fixture
def status_of(session_factory):
    """Read back the persisted status of one attendance record"""

    def read(user_id, conference_id=CONFERENCE_ID):
        db = session_factory()
        try:
            record = (
                db.query(AttendanceRecord)
                .filter(AttendanceRecord.conference_id == conference_id, AttendanceRecord.user_id == user_id)
                .one()
            )
            return AttendanceStatus(record.status)
        finally:
            db.close()

    return read
