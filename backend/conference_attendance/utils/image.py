import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("JPEG", "PNG")


def validate_image(image_bytes: bytes, max_size_mb: int = 10) -> Tuple[bool, Optional[str]]:
    """
    Validate image file
    Returns (is_valid, error_message)
    """
    if not image_bytes:
        return False, "Empty image file"

    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > max_size_mb:
        return False, f"Image too large: {size_mb:.2f}MB (max {max_size_mb}MB)"

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.error(f"Image validation error: {e}")
        return False, f"Invalid image: {e}"

    if image.format not in SUPPORTED_FORMATS:
        return False, f"Unsupported format: {image.format}"

    return True, None
