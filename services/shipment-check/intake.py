"""Intake validation for candidate shipment photos.

Only container-level checks are made: the declared MIME type and the byte
size. The image content is never inspected.
"""

import logging

from pydantic import BaseModel

from models import CandidateFile

logger = logging.getLogger(__name__)

# image/jpg is not a registered type but some browsers still send it
ACCEPTED_TYPES = ("image/png", "image/jpeg", "image/jpg", "image/webp")
MAX_SIZE_BYTES = 10 * 1024 * 1024

UNSUPPORTED_TYPE_MESSAGE = "Upload a PNG, JPG or WEBP image."
TOO_LARGE_MESSAGE = "The image must be smaller than 10 MB."


class Accepted(BaseModel):
    file: CandidateFile


class Rejected(BaseModel):
    reason: str


ValidationOutcome = Accepted | Rejected


def validate(file: CandidateFile) -> ValidationOutcome:
    """Accept the file or return the user-facing reason it was refused."""
    if file.content_type not in ACCEPTED_TYPES:
        logger.info("Rejected upload: unsupported type %r", file.content_type)
        return Rejected(reason=UNSUPPORTED_TYPE_MESSAGE)

    if file.size > MAX_SIZE_BYTES:
        logger.info("Rejected upload: %d bytes exceeds %d", file.size, MAX_SIZE_BYTES)
        return Rejected(reason=TOO_LARGE_MESSAGE)

    return Accepted(file=file)
