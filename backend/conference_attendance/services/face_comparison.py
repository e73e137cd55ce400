import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from conference_attendance.core.exceptions import (
    GatewayFailure,
    IndeterminatePayload,
    SourceImageNotFound,
)
from conference_attendance.models.images import Image, InlineImage, StorageImage
from conference_attendance.models.verification import ComparisonVerdict

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 75.0

# Rekognition reports a missing S3 object with one of these codes
_NOT_FOUND_CODES = {"InvalidS3ObjectException", "NoSuchKey", "NoSuchBucket"}
# Raised when no face can be detected in the source image
_NO_FACE_CODES = {"InvalidParameterException"}


def validate_threshold(similarity_threshold: float) -> float:
    threshold = float(similarity_threshold)
    if not 0.0 <= threshold <= 100.0:
        raise ValueError(f"similarity_threshold must be within [0, 100], got {similarity_threshold}")
    return threshold


class FaceComparisonGateway(ABC):
    """Compares a participant's reference image against the captured site image."""

    @abstractmethod
    def compare(
        self,
        reference_image: Image,
        captured_image: Image,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> ComparisonVerdict:
        """Return a verdict, or raise SourceImageNotFound / GatewayFailure / IndeterminatePayload."""


def to_rekognition_image(image: Image) -> Dict[str, Any]:
    if isinstance(image, InlineImage):
        return {"Bytes": image.data}
    if isinstance(image, StorageImage):
        return {"S3Object": {"Bucket": image.bucket, "Name": image.key}}
    raise TypeError(f"Unsupported image type: {type(image).__name__}")


class RekognitionGateway(FaceComparisonGateway):
    """AWS Rekognition CompareFaces backend"""

    def __init__(self, client=None, region: str = "ap-south-1", endpoint_url: Optional[str] = None):
        self.client = client or boto3.client(
            "rekognition",
            region_name=region,
            endpoint_url=endpoint_url,
        )

    def compare(
        self,
        reference_image: Image,
        captured_image: Image,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> ComparisonVerdict:
        threshold = validate_threshold(similarity_threshold)

        try:
            response = self.client.compare_faces(
                SourceImage=to_rekognition_image(reference_image),
                TargetImage=to_rekognition_image(captured_image),
                SimilarityThreshold=threshold,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _NOT_FOUND_CODES:
                logger.warning(f"Image not found in storage: {e}")
                raise SourceImageNotFound(f"Image key not found in storage: {code}") from e
            if code in _NO_FACE_CODES:
                logger.warning(f"Rekognition could not find a face to compare: {e}")
                return ComparisonVerdict.INDETERMINATE
            logger.error(f"❌ Rekognition request failed: {e}")
            raise GatewayFailure(f"Rekognition request failed: {code or e}") from e
        except BotoCoreError as e:
            logger.error(f"❌ Rekognition unreachable: {e}")
            raise GatewayFailure(f"Rekognition unreachable: {e}") from e

        return self.interpret(response)

    @staticmethod
    def interpret(response: Any) -> ComparisonVerdict:
        """Map a CompareFaces payload onto a verdict."""
        if not isinstance(response, dict):
            raise IndeterminatePayload(f"Unexpected CompareFaces payload type: {type(response).__name__}")

        matches = response.get("FaceMatches")
        if matches is None:
            raise IndeterminatePayload("CompareFaces payload has no FaceMatches")
        if not isinstance(matches, list):
            raise IndeterminatePayload(f"FaceMatches is not a list: {type(matches).__name__}")

        for match in matches:
            if not isinstance(match, dict):
                raise IndeterminatePayload(f"FaceMatches entry is not an object: {type(match).__name__}")
            similarity = match.get("Similarity")
            if isinstance(similarity, bool) or not isinstance(similarity, (int, float)):
                raise IndeterminatePayload(f"FaceMatches entry has no numeric Similarity: {similarity!r}")

        if matches:
            logger.debug("Rekognition found %d match(es)", len(matches))
            return ComparisonVerdict.SIMILAR
        return ComparisonVerdict.DIFFERENT
