class AttendanceError(Exception):
    """Base exception for the attendance verification system."""

    kind = "attendance_error"


class RosterUnavailable(AttendanceError):
    """Raised when the participant roster cannot be read from the store."""

    kind = "roster_unavailable"


class SourceImageNotFound(AttendanceError):
    """Raised when a reference or captured image cannot be located."""

    kind = "source_image_not_found"


class GatewayFailure(AttendanceError):
    """Raised when the recognition service call fails."""

    kind = "gateway_failure"


class IndeterminatePayload(AttendanceError):
    """Raised when the recognition service answers with a malformed payload."""

    kind = "indeterminate_payload"


class StoreWriteFailure(AttendanceError):
    """Raised when an attendance record cannot be written."""

    kind = "store_write_failure"


class NotificationFailure(AttendanceError):
    """Raised by mail transports; the gateway reports it, never propagates it."""

    kind = "notification_failure"


class CaptureError(AttendanceError):
    """Raised when the camera fails to produce a usable image."""

    kind = "capture_error"
