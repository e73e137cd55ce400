import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from conference_attendance.core.exceptions import RosterUnavailable, SourceImageNotFound, StoreWriteFailure
from conference_attendance.models.attendance import AttendanceRecord, AttendanceStatus
from conference_attendance.models.conference import Conference, ConferenceStatus
from conference_attendance.models.participant import Participant
from conference_attendance.models.verification import AbsenceMark, MarkResult

logger = logging.getLogger(__name__)


class AttendanceStore(ABC):
    """Participant roster and per-conference attendance records."""

    @abstractmethod
    def list_registered_user_ids(self, conference_id: str) -> List[str]:
        """Raises RosterUnavailable when the store cannot be read."""

    @abstractmethod
    def mark_present(self, conference_id: str, user_id: str) -> MarkResult:
        """Raises StoreWriteFailure when the write fails."""

    @abstractmethod
    def mark_absent(self, conference_id: str, user_id: str) -> AbsenceMark:
        """Raises StoreWriteFailure when the write fails."""

    def mark_conference_completed(self, conference_id: str) -> bool:
        return False

    def reference_image_key(self, user_id: str) -> str:
        """Storage key of the enrollment photo; the user id unless one was recorded."""
        return user_id


class SqlAttendanceStore(AttendanceStore):
    """
    AttendanceStore over SQLAlchemy.

    Every operation opens its own session so that concurrent pipeline
    workers never share one. Writes touch a single (conference, user) row
    and commit immediately.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def _record_query(self, db: Session, conference_id: str, user_id: str):
        return db.query(AttendanceRecord).filter(
            AttendanceRecord.conference_id == conference_id,
            AttendanceRecord.user_id == user_id,
        )

    def list_registered_user_ids(self, conference_id: str) -> List[str]:
        try:
            with self._session() as db:
                rows = (
                    db.query(AttendanceRecord.user_id)
                    .filter(AttendanceRecord.conference_id == conference_id)
                    .order_by(AttendanceRecord.id)
                    .all()
                )
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not read roster for conference {conference_id}: {e}")
            raise RosterUnavailable(f"Roster unavailable for conference {conference_id}") from e

        return [row.user_id for row in rows]

    def _transition(self, conference_id: str, user_id: str, status: AttendanceStatus):
        """Set the record's status; returns (rows modified, record exists, email)."""
        with self._session() as db:
            try:
                modified = (
                    self._record_query(db, conference_id, user_id)
                    .filter(AttendanceRecord.status != status.value)
                    .update({AttendanceRecord.status: status.value}, synchronize_session=False)
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

            record = self._record_query(db, conference_id, user_id).first()
            if record is None:
                return modified, False, None

            email = record.email
            if not email:
                participant = db.query(Participant).filter(Participant.user_id == user_id).first()
                email = participant.email if participant else None
            return modified, True, email

    def mark_present(self, conference_id: str, user_id: str) -> MarkResult:
        try:
            modified, exists, _ = self._transition(conference_id, user_id, AttendanceStatus.PRESENT)
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not mark {user_id} present in {conference_id}: {e}")
            raise StoreWriteFailure(f"Unable to update data for {user_id}") from e

        if modified:
            return MarkResult.UPDATED
        if exists:
            return MarkResult.ALREADY_PRESENT
        return MarkResult.NOT_FOUND

    def mark_absent(self, conference_id: str, user_id: str) -> AbsenceMark:
        try:
            modified, exists, email = self._transition(conference_id, user_id, AttendanceStatus.ABSENT)
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not mark {user_id} absent in {conference_id}: {e}")
            raise StoreWriteFailure(f"Unable to update data for {user_id}") from e

        if modified:
            return AbsenceMark(MarkResult.UPDATED, email)
        if exists:
            return AbsenceMark(MarkResult.ALREADY_ABSENT, email)
        return AbsenceMark(MarkResult.NOT_FOUND)

    def reference_image_key(self, user_id: str) -> str:
        try:
            with self._session() as db:
                participant = db.query(Participant).filter(Participant.user_id == user_id).first()
        except SQLAlchemyError as e:
            logger.error(f"❌ Could not look up reference image of {user_id}: {e}")
            raise SourceImageNotFound(f"Unable to resolve reference image for {user_id}") from e

        if participant is not None and participant.reference_image_key:
            return participant.reference_image_key
        return user_id

    def get_conference(self, conference_id: str) -> Optional[Conference]:
        with self._session() as db:
            return db.query(Conference).filter(Conference.conference_id == conference_id).first()

    def mark_conference_completed(self, conference_id: str) -> bool:
        with self._session() as db:
            try:
                modified = (
                    db.query(Conference)
                    .filter(Conference.conference_id == conference_id)
                    .update({Conference.status: ConferenceStatus.COMPLETED.value}, synchronize_session=False)
                )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreWriteFailure(f"Unable to complete conference {conference_id}") from e
        return modified > 0

    def list_attendance(self, conference_id: str) -> List[AttendanceRecord]:
        with self._session() as db:
            return (
                db.query(AttendanceRecord)
                .filter(AttendanceRecord.conference_id == conference_id)
                .order_by(AttendanceRecord.id)
                .all()
            )
