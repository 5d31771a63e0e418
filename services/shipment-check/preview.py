"""In-memory preview handles for candidate images.

A preview is created when a file becomes the current candidate and must be
revoked exactly once when that file is replaced or cleared.
"""

import logging
import uuid

from models import CandidateFile

logger = logging.getLogger(__name__)


class PreviewStore:
    """Issues ``preview:`` URLs for candidate files and keeps their bytes until revoked."""

    def __init__(self):
        self._previews: dict[str, CandidateFile] = {}

    def __len__(self) -> int:
        return len(self._previews)

    def create(self, file: CandidateFile) -> str:
        url = f"preview:{uuid.uuid4().hex}"
        self._previews[url] = file
        return url

    def get(self, url: str) -> CandidateFile | None:
        return self._previews.get(url)

    def revoke(self, url: str) -> None:
        if self._previews.pop(url, None) is None:
            logger.warning("Preview %s revoked twice or never created", url)
