import logging
import subprocess
from pathlib import Path
from typing import List

from conference_attendance.core.exceptions import CaptureError
from conference_attendance.utils.image import validate_image

logger = logging.getLogger(__name__)


class CameraTrigger:
    """Captures the site image with raspistill and writes it to disk."""

    def __init__(
        self,
        output_path: str,
        command: str = "raspistill",
        shutter_speed: int = 3000,
        quality: int = 100,
        contrast: int = 50,
        sharpness: int = 30,
        brightness: int = 60,
        timeout: float = 30.0,
        max_size_mb: int = 10,
    ):
        self.output_path = Path(output_path)
        self.command = command
        self.shutter_speed = shutter_speed
        self.quality = quality
        self.contrast = contrast
        self.sharpness = sharpness
        self.brightness = brightness
        self.timeout = timeout
        self.max_size_mb = max_size_mb

    def build_command(self) -> List[str]:
        return [
            self.command,
            "-t", str(self.shutter_speed),
            "-q", str(self.quality),
            "-co", str(self.contrast),
            "-sh", str(self.sharpness),
            "-br", str(self.brightness),
            "-o", str(self.output_path),
        ]

    def capture(self) -> Path:
        """Trigger the camera; returns the path of the validated image"""
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            completed = subprocess.run(
                self.build_command(),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise CaptureError(f"Camera command not found: {self.command}") from e
        except subprocess.TimeoutExpired as e:
            raise CaptureError(f"Camera timed out after {self.timeout}s") from e

        if completed.returncode != 0:
            stderr = completed.stderr.decode(errors="replace").strip()
            raise CaptureError(f"Unable to capture image (exit {completed.returncode}): {stderr}")

        try:
            image_bytes = self.output_path.read_bytes()
        except OSError as e:
            raise CaptureError(f"Unable to capture image: {e}") from e

        is_valid, error = validate_image(image_bytes, max_size_mb=self.max_size_mb)
        if not is_valid:
            raise CaptureError(f"Captured image rejected: {error}")

        logger.info(f"📷 Captured site image at {self.output_path}")
        return self.output_path
