"""HTTP client for the shipment analysis webhook.

Uses an httpx AsyncClient with configurable timeouts. Requests are never
retried here: a failed analysis surfaces to the flow, and the user decides
whether to try again.
"""

import json
import logging
from typing import Any

import httpx

from config import settings
from models import AnalysisResult, CandidateFile
from normalizer import normalize

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "file"

SERVICE_ERROR_MESSAGE = "the analysis service returned an error"
NOT_JSON_MESSAGE = "expected a JSON response from the analysis service"


class AnalysisError(Exception):
    """Base class for failures while analysing a file."""


class ConfigurationError(AnalysisError):
    """The analysis webhook URL is not configured."""


class TransportError(AnalysisError):
    """The analysis webhook could not be reached."""


class ProtocolError(AnalysisError):
    """The analysis webhook answered with an error or a non-JSON body."""


_NO_BODY = object()


class AnalysisClient:
    """Posts candidate files to the analysis webhook and normalizes the answer."""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: int | None = None,
        connect_timeout: int | None = None,
    ):
        self._webhook_url = webhook_url if webhook_url is not None else settings.ANALYSIS_WEBHOOK_URL

        read_timeout = timeout if timeout is not None else settings.ANALYSIS_TIMEOUT_SECONDS
        conn_timeout = connect_timeout if connect_timeout is not None else settings.ANALYSIS_CONNECT_TIMEOUT

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=float(conn_timeout),
                read=float(read_timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    @property
    def configured(self) -> bool:
        return bool(self._webhook_url)

    async def close(self):
        await self._client.aclose()

    async def analyze(self, file: CandidateFile) -> AnalysisResult:
        """Submit one file and return the normalized verdict.

        Raises ConfigurationError, TransportError or ProtocolError.
        """
        if not self._webhook_url:
            raise ConfigurationError(
                "ANALYSIS_WEBHOOK_URL is not set. Add the analysis webhook URL to the environment."
            )

        # Privacy: log name-free metadata only, never image content
        logger.info("Submitting analysis: type=%s size=%d bytes", file.content_type, file.size)

        files = {UPLOAD_FIELD: (file.name, file.content, file.content_type)}
        try:
            resp = await self._client.post(self._webhook_url, files=files)
        except httpx.TimeoutException as e:
            logger.warning("Analysis webhook timed out: %s", e)
            raise TransportError(f"The analysis service did not respond in time: {e}") from e
        except httpx.TransportError as e:
            logger.warning("Analysis webhook connection failed: %s", e)
            raise TransportError(f"Cannot reach the analysis service: {e}") from e

        payload = self._read_payload(resp)
        return normalize(payload)

    def _read_payload(self, resp: httpx.Response) -> Any:
        """Parse the response body, raising ProtocolError for errors and non-JSON bodies."""
        content_type = resp.headers.get("content-type", "")
        raw_text: str | None = None

        if "application/json" in content_type:
            payload = _parse_json(resp.text)
        else:
            raw_text = resp.text
            payload = _parse_json(raw_text)

        if payload is _NO_BODY:
            if not resp.is_success:
                logger.error("Analysis webhook error %d with non-JSON body", resp.status_code)
                raise ProtocolError(raw_text or SERVICE_ERROR_MESSAGE)
            logger.error("Analysis webhook returned non-JSON body (content-type=%r)", content_type)
            raise ProtocolError(NOT_JSON_MESSAGE)

        if not resp.is_success:
            message = _error_message(payload, raw_text, resp.status_code)
            logger.error("Analysis webhook error %d: %s", resp.status_code, message)
            raise ProtocolError(message)

        return payload


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _NO_BODY


def _error_message(payload: Any, raw_text: str | None, status_code: int) -> str:
    record = payload if isinstance(payload, dict) else {}
    for key in ("error", "message"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    if raw_text:
        return raw_text
    return f"service responded with status {status_code}"
