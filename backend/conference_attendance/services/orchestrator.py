"""
Attendance verification pipeline.

One run takes the roster of a conference and compares the single site
capture against every participant's enrollment photo. Participants are
independent units of work: a queue feeds a fixed number of workers, each
unit runs compare -> store write -> notify strictly in order, and every
outcome lands in one aggregate result. A failure inside one unit is
recorded against that participant and never stops the others.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from conference_attendance.core.config import PipelineConfig
from conference_attendance.core.exceptions import (
    AttendanceError,
    IndeterminatePayload,
    RosterUnavailable,
)
from conference_attendance.models.images import Image
from conference_attendance.models.verification import (
    ComparisonVerdict,
    MarkResult,
    NotificationOutcome,
    ParticipantOutcome,
    ParticipantStatus,
    PipelineResult,
)
from conference_attendance.services.attendance_store import AttendanceStore
from conference_attendance.services.face_comparison import FaceComparisonGateway
from conference_attendance.services.image_source import ImageSource
from conference_attendance.services.notification import NotificationGateway

logger = logging.getLogger(__name__)


def failed(user_id: str, detail: str, error_kind: str) -> ParticipantOutcome:
    return ParticipantOutcome(
        user_id=user_id,
        status=ParticipantStatus.COMPARISON_FAILED,
        detail=detail,
        error_kind=error_kind,
    )


class AttendanceOrchestrator:
    def __init__(
        self,
        store: AttendanceStore,
        gateway: FaceComparisonGateway,
        images: ImageSource,
        notifier: NotificationGateway,
        config: Optional[PipelineConfig] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.images = images
        self.notifier = notifier
        self.config = config or PipelineConfig()

    async def run_attendance_verification(self, conference_id: str) -> PipelineResult:
        """Verify every participant registered for the conference."""
        logger.info(f"🚀 Attendance verification started for conference {conference_id}")

        try:
            user_ids = await asyncio.to_thread(self.store.list_registered_user_ids, conference_id)
        except RosterUnavailable as e:
            logger.error(f"❌ Roster unavailable for conference {conference_id}: {e}")
            return PipelineResult.roster_unavailable(conference_id, str(e))

        # Each participant is attempted exactly once per run
        roster = list(dict.fromkeys(user_ids))
        if not roster:
            logger.info(f"Conference {conference_id} has no registered participants")
            return PipelineResult.empty_roster(conference_id)

        captured, capture_error = await self._fetch_captured()
        outcomes = await self._fan_out(conference_id, roster, captured, capture_error)
        result = PipelineResult.completed(conference_id, [outcomes[user_id] for user_id in roster])

        await self._complete_conference(conference_id)

        failures = sum(1 for outcome in result.outcomes if outcome.failed)
        logger.info(
            f"✅ Verification finished for conference {conference_id}: "
            f"{len(result.outcomes)} participant(s), {failures} failure(s)"
        )
        return result

    async def _fetch_captured(self):
        try:
            return await asyncio.to_thread(self.images.fetch_captured), None
        except AttendanceError as e:
            logger.error(f"❌ Captured image unavailable: {e}")
            return None, e

    async def _fan_out(
        self,
        conference_id: str,
        roster: List[str],
        captured: Optional[Image],
        capture_error: Optional[AttendanceError],
    ) -> Dict[str, ParticipantOutcome]:
        pending: asyncio.Queue = asyncio.Queue()
        for user_id in roster:
            pending.put_nowait(user_id)

        results: asyncio.Queue = asyncio.Queue()

        async def worker():
            while True:
                try:
                    user_id = pending.get_nowait()
                except asyncio.QueueEmpty:
                    return
                if capture_error is not None:
                    outcome = failed(user_id, str(capture_error), capture_error.kind)
                else:
                    outcome = await self.verify_participant(conference_id, user_id, captured)
                logger.info(f"{outcome.status.value} - {user_id}")
                await results.put(outcome)

        worker_count = min(self.config.worker_concurrency, len(roster))
        # Cancelling the caller cancels every worker; committed writes stay
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        outcomes: Dict[str, ParticipantOutcome] = {}
        while not results.empty():
            outcome = results.get_nowait()
            outcomes[outcome.user_id] = outcome
        return outcomes

    async def verify_participant(self, conference_id: str, user_id: str, captured: Image) -> ParticipantOutcome:
        """Run one participant through compare -> update -> notify."""
        try:
            reference = await asyncio.to_thread(self.images.fetch_reference, user_id)
            verdict = await asyncio.to_thread(
                self.gateway.compare,
                reference,
                captured,
                self.config.similarity_threshold,
            )

            if verdict is ComparisonVerdict.SIMILAR:
                return await self._record_presence(conference_id, user_id)
            if verdict is ComparisonVerdict.DIFFERENT:
                return await self._record_absence(conference_id, user_id)
            if verdict is ComparisonVerdict.INDETERMINATE:
                logger.warning(f"Indefinite result for user {user_id}")
                return failed(user_id, "Indefinite Result", "indeterminate_verdict")
            raise AssertionError(f"Unhandled comparison verdict: {verdict!r}")

        except IndeterminatePayload as e:
            logger.error(f"❌ Recognition service returned a malformed payload for {user_id}: {e}")
            return failed(user_id, str(e), e.kind)
        except AttendanceError as e:
            logger.warning(f"⚠️ Verification failed for {user_id} ({e.kind}): {e}")
            return failed(user_id, str(e), e.kind)
        except Exception as e:
            logger.exception(f"❌ Unexpected error while verifying {user_id}")
            return failed(user_id, f"{type(e).__name__}: {e}", "unexpected_error")

    async def _record_presence(self, conference_id: str, user_id: str) -> ParticipantOutcome:
        result = await asyncio.to_thread(self.store.mark_present, conference_id, user_id)

        if result is MarkResult.UPDATED:
            return ParticipantOutcome(user_id, ParticipantStatus.MARKED_PRESENT)
        if result is MarkResult.ALREADY_PRESENT:
            return ParticipantOutcome(user_id, ParticipantStatus.ALREADY_PRESENT, detail="Already Present")
        if result is MarkResult.NOT_FOUND:
            return failed(user_id, "No attendance record for participant", "record_not_found")
        raise AssertionError(f"Unhandled mark_present result: {result!r}")

    async def _record_absence(self, conference_id: str, user_id: str) -> ParticipantOutcome:
        mark = await asyncio.to_thread(self.store.mark_absent, conference_id, user_id)
        if mark.result is MarkResult.NOT_FOUND:
            return failed(user_id, "No attendance record for participant", "record_not_found")

        notification = await self._notify(mark.email)
        if notification.delivered:
            return ParticipantOutcome(user_id, ParticipantStatus.MARKED_ABSENT_AND_NOTIFIED)
        return ParticipantOutcome(
            user_id,
            ParticipantStatus.MARKED_ABSENT_NOTIFICATION_FAILED,
            detail=notification.reason,
            error_kind="notification_failure",
        )

    async def _notify(self, email: Optional[str]) -> NotificationOutcome:
        # The absence is already persisted; mail problems only change the outcome label
        try:
            return await asyncio.to_thread(self.notifier.notify, email)
        except Exception as e:
            logger.exception(f"❌ Notification gateway raised for {email}")
            return NotificationOutcome.failure(f"{type(e).__name__}: {e}")

    async def _complete_conference(self, conference_id: str):
        if not self.config.mark_conference_completed:
            return
        try:
            updated = await asyncio.to_thread(self.store.mark_conference_completed, conference_id)
        except AttendanceError as e:
            logger.warning(f"⚠️ Could not mark conference {conference_id} completed: {e}")
            return
        if updated:
            logger.info(f"Conference {conference_id} marked completed")
