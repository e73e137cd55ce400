import io
import logging
from typing import List

import face_recognition
import numpy as np

from conference_attendance.core.exceptions import GatewayFailure
from conference_attendance.models.images import Image, InlineImage
from conference_attendance.models.verification import ComparisonVerdict
from conference_attendance.services.face_comparison import (
    DEFAULT_SIMILARITY_THRESHOLD,
    FaceComparisonGateway,
    validate_threshold,
)

logger = logging.getLogger(__name__)


class FaceEmbeddingGateway(FaceComparisonGateway):
    """Local comparison with face_recognition embeddings (no cloud service)."""

    def __init__(self, model: str = "hog", num_jitters: int = 1):
        self.model = model
        self.num_jitters = num_jitters
        logger.info(f"✅ Face embedding gateway initialized (model={model})")

    def generate_embeddings(self, image: Image) -> List[np.ndarray]:
        """Generate one embedding per face found in the image"""
        if not isinstance(image, InlineImage):
            raise GatewayFailure(f"Local face comparison needs inline image bytes, got {image!r}")

        try:
            pixels = face_recognition.load_image_file(io.BytesIO(image.data))
        except (OSError, ValueError) as e:
            raise GatewayFailure(f"Could not decode image: {e}") from e

        locations = face_recognition.face_locations(pixels, model=self.model)
        if not locations:
            return []
        return face_recognition.face_encodings(pixels, locations, num_jitters=self.num_jitters)

    def compare(
        self,
        reference_image: Image,
        captured_image: Image,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> ComparisonVerdict:
        threshold = validate_threshold(similarity_threshold)

        reference = self.generate_embeddings(reference_image)
        if not reference:
            logger.warning("No face found in reference image")
            return ComparisonVerdict.INDETERMINATE

        captured = self.generate_embeddings(captured_image)
        if not captured:
            logger.info("No faces found in captured image")
            return ComparisonVerdict.DIFFERENT

        distances = face_recognition.face_distance(captured, reference[0])
        similarities = (1 - np.asarray(distances, dtype=float)) * 100
        best = float(similarities.max())
        logger.debug(f"Best local similarity {best:.2f}% against {len(captured)} face(s)")

        if best >= threshold:
            return ComparisonVerdict.SIMILAR
        return ComparisonVerdict.DIFFERENT
