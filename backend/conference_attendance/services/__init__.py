"""
Pipeline services and the factory that wires them from settings.

Usage:
    from conference_attendance.services import build_orchestrator

    orchestrator = build_orchestrator(settings)
    result = await orchestrator.run_attendance_verification("123456789")
"""
from typing import Optional

from sqlalchemy.orm import sessionmaker

from conference_attendance.core.config import PipelineConfig, Settings
from conference_attendance.db.session import create_db_engine, create_session_factory
from conference_attendance.services.attendance_store import AttendanceStore, SqlAttendanceStore
from conference_attendance.services.camera import CameraTrigger
from conference_attendance.services.face_comparison import FaceComparisonGateway, RekognitionGateway
from conference_attendance.services.image_source import (
    DirectoryImageSource,
    ImageSource,
    S3ImageSource,
)
from conference_attendance.services.notification import NotificationGateway, SmtpNotificationGateway
from conference_attendance.services.orchestrator import AttendanceOrchestrator


def build_gateway(config: PipelineConfig, settings: Settings) -> FaceComparisonGateway:
    if config.recognition.backend == "local":
        # dlib is only loaded when the local backend is selected
        from conference_attendance.services.face_embedding import FaceEmbeddingGateway

        return FaceEmbeddingGateway(model=settings.FACE_DETECTION_MODEL, num_jitters=settings.NUM_JITTERS)
    return RekognitionGateway(region=config.recognition.region, endpoint_url=config.recognition.endpoint_url)


def build_image_source(
    config: PipelineConfig, settings: Settings, store: Optional[AttendanceStore] = None
) -> ImageSource:
    key_lookup = store.reference_image_key if store is not None else None
    if config.recognition.backend == "local":
        return DirectoryImageSource(
            settings.REFERENCE_IMAGE_DIR, settings.CAPTURED_IMAGE_PATH, key_lookup=key_lookup
        )
    return S3ImageSource(settings.REFERENCE_IMAGE_BUCKET, settings.CAPTURED_IMAGE_PATH, key_lookup=key_lookup)


def build_notifier(settings: Settings) -> SmtpNotificationGateway:
    return SmtpNotificationGateway(
        sender=settings.MAIL_SENDER,
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT,
        subject=settings.ABSENCE_MAIL_SUBJECT,
        body=settings.ABSENCE_MAIL_BODY,
    )


def build_camera(settings: Settings) -> CameraTrigger:
    return CameraTrigger(
        output_path=settings.CAPTURED_IMAGE_PATH,
        command=settings.CAMERA_COMMAND,
        shutter_speed=settings.CAMERA_SHUTTER_SPEED,
        quality=settings.CAMERA_QUALITY,
        contrast=settings.CAMERA_CONTRAST,
        sharpness=settings.CAMERA_SHARPNESS,
        brightness=settings.CAMERA_BRIGHTNESS,
        max_size_mb=settings.MAX_CAPTURE_SIZE_MB,
    )


def build_orchestrator(
    settings: Settings, session_factory: Optional[sessionmaker] = None
) -> AttendanceOrchestrator:
    """Wire the pipeline; without a session factory one is built from the configured store URL."""
    config = PipelineConfig.from_settings(settings)
    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(config.store.database_url))
    store = SqlAttendanceStore(session_factory)
    return AttendanceOrchestrator(
        store=store,
        gateway=build_gateway(config, settings),
        images=build_image_source(config, settings, store),
        notifier=build_notifier(settings),
        config=config,
    )


__all__ = [
    "AttendanceOrchestrator",
    "AttendanceStore",
    "CameraTrigger",
    "DirectoryImageSource",
    "FaceComparisonGateway",
    "ImageSource",
    "NotificationGateway",
    "RekognitionGateway",
    "S3ImageSource",
    "SmtpNotificationGateway",
    "SqlAttendanceStore",
    "build_camera",
    "build_orchestrator",
]
