import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional, Sequence

from conference_attendance.core.exceptions import SourceImageNotFound
from conference_attendance.models.images import Image, InlineImage, StorageImage

logger = logging.getLogger(__name__)

REFERENCE_EXTENSIONS = (".jpg", ".jpeg", ".png")

# Maps a user id to the storage key of their enrollment photo
KeyLookup = Callable[[str], str]


class ImageSource(ABC):
    """Supplies the enrollment photo of a participant and the site capture."""

    key_lookup: Optional[KeyLookup] = None

    def reference_key(self, user_id: str) -> str:
        if self.key_lookup is None:
            return user_id
        return self.key_lookup(user_id) or user_id

    @abstractmethod
    def fetch_reference(self, user_id: str) -> Image:
        ...

    @abstractmethod
    def fetch_captured(self) -> Image:
        ...


def read_image_file(path: Path) -> InlineImage:
    try:
        return InlineImage(path.read_bytes())
    except FileNotFoundError as e:
        raise SourceImageNotFound(f"Image file not found: {path}") from e
    except OSError as e:
        raise SourceImageNotFound(f"Image file unreadable: {path} ({e})") from e


class S3ImageSource(ImageSource):
    """Reference photos live in an S3 bucket; the capture is on local disk."""

    def __init__(self, bucket: str, captured_image_path: str, key_lookup: Optional[KeyLookup] = None):
        self.bucket = bucket
        self.captured_image_path = Path(captured_image_path)
        self.key_lookup = key_lookup

    def fetch_reference(self, user_id: str) -> Image:
        return StorageImage(bucket=self.bucket, key=self.reference_key(user_id))

    def fetch_captured(self) -> Image:
        return read_image_file(self.captured_image_path)


class DirectoryImageSource(ImageSource):
    """Reference photos are files named after their key (the user id by default) inside a directory."""

    def __init__(
        self,
        reference_dir: str,
        captured_image_path: str,
        extensions: Sequence[str] = REFERENCE_EXTENSIONS,
        key_lookup: Optional[KeyLookup] = None,
    ):
        self.reference_dir = Path(reference_dir)
        self.captured_image_path = Path(captured_image_path)
        self.extensions = tuple(extensions)
        self.key_lookup = key_lookup

    def fetch_reference(self, user_id: str) -> Image:
        key = self.reference_key(user_id)
        for extension in self.extensions:
            candidate = self.reference_dir / f"{key}{extension}"
            if candidate.is_file():
                return read_image_file(candidate)
        raise SourceImageNotFound(f"No reference image for user {user_id} in {self.reference_dir}")

    def fetch_captured(self) -> Image:
        return read_image_file(self.captured_image_path)
