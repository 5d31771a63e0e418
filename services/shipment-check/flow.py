"""Upload/analysis state machine.

Drives a single candidate file through collect -> analyzing -> result | error.
Runs on one asyncio event loop. The move into ANALYZING happens before the
first await, so while a request is outstanding every other entry point sees
that stage and leaves the flow untouched.
"""

import logging

from analysis_client import AnalysisClient, AnalysisError
from config import settings
from formatting import format_bytes, format_confidence
from intake import Rejected, validate
from models import AnalysisResult, CandidateFile, FileMeta, FlowSnapshot, FlowStage, Helpline
from preview import PreviewStore

logger = logging.getLogger(__name__)

HELPLINE_CONFIDENCE_THRESHOLD = 0.7

GENERIC_ERROR_MESSAGE = "There was a problem checking the image. Please try again."

TRANSITIONS: dict[FlowStage, frozenset[FlowStage]] = {
    FlowStage.COLLECT: frozenset({FlowStage.COLLECT, FlowStage.ANALYZING}),
    FlowStage.ANALYZING: frozenset({FlowStage.RESULT, FlowStage.ERROR}),
    FlowStage.RESULT: frozenset({FlowStage.COLLECT}),
    FlowStage.ERROR: frozenset({FlowStage.ANALYZING, FlowStage.COLLECT}),
}


class InvalidTransition(Exception):
    """A stage change not allowed by the transition table."""


def is_helpline_eligible(result: AnalysisResult | None) -> bool:
    return (
        result is not None
        and result.looks_like_shipment
        and result.confidence >= HELPLINE_CONFIDENCE_THRESHOLD
    )


class FlowController:
    """Owns the candidate file, its preview and the outcome of its analysis."""

    def __init__(self, client: AnalysisClient, previews: PreviewStore | None = None):
        self._client = client
        self._previews = previews if previews is not None else PreviewStore()
        self._stage = FlowStage.COLLECT
        self._file: CandidateFile | None = None
        self._preview_url: str | None = None
        self._result: AnalysisResult | None = None
        self._error: str | None = None

    @property
    def stage(self) -> FlowStage:
        return self._stage

    @property
    def file(self) -> CandidateFile | None:
        return self._file

    @property
    def preview_url(self) -> str | None:
        return self._preview_url

    @property
    def result(self) -> AnalysisResult | None:
        return self._result

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def file_meta(self) -> FileMeta | None:
        if self._file is None:
            return None
        return FileMeta(
            name=self._file.name,
            size=format_bytes(self._file.size),
            content_type=self._file.content_type,
        )

    @property
    def helpline_eligible(self) -> bool:
        return self._stage is FlowStage.RESULT and is_helpline_eligible(self._result)

    async def select_file(self, file: CandidateFile) -> bool:
        """Take a new candidate file. Returns False if the flow is busy and ignored it."""
        if self._stage is FlowStage.ANALYZING:
            logger.info("Ignoring file selection while an analysis is in flight")
            return False

        if self._stage is not FlowStage.COLLECT:
            self._transition(FlowStage.COLLECT)

        outcome = validate(file)
        if isinstance(outcome, Rejected):
            self._set_file(None)
            self._result = None
            self._error = outcome.reason
            self._transition(FlowStage.COLLECT)
            return True

        self._set_file(file)
        await self._analyze()
        return True

    async def retry(self) -> bool:
        """Analyse the current file again after a failure, skipping validation."""
        if self._stage is not FlowStage.ERROR or self._file is None:
            return False
        await self._analyze()
        return True

    def reset(self) -> bool:
        if self._stage is FlowStage.ANALYZING:
            return False
        self._set_file(None)
        self._result = None
        self._error = None
        self._transition(FlowStage.COLLECT)
        return True

    def close(self) -> None:
        """Release the preview. The controller must not be reused after this."""
        self._set_file(None)

    def snapshot(self) -> FlowSnapshot:
        eligible = self.helpline_eligible
        return FlowSnapshot(
            stage=self._stage,
            result=self._result,
            confidence_label=format_confidence(self._result.confidence) if self._result else None,
            error=self._error,
            file=self.file_meta,
            preview_url=self._preview_url,
            helpline_eligible=eligible,
            helpline=Helpline(number=settings.HELPLINE_NUMBER, tel=settings.HELPLINE_TEL) if eligible else None,
        )

    async def _analyze(self) -> None:
        file = self._file
        self._transition(FlowStage.ANALYZING)
        self._error = None
        self._result = None

        try:
            result = await self._client.analyze(file)
        except AnalysisError as e:
            logger.error("Analysis failed: %s", e)
            self._error = str(e) or GENERIC_ERROR_MESSAGE
            self._transition(FlowStage.ERROR)
            return
        except Exception:
            logger.exception("Unexpected failure during analysis")
            self._error = GENERIC_ERROR_MESSAGE
            self._transition(FlowStage.ERROR)
            return
        except BaseException:
            # Cancelled mid-request; leave ANALYZING so the flow stays usable.
            logger.warning("Analysis interrupted before a result arrived")
            self._error = GENERIC_ERROR_MESSAGE
            self._transition(FlowStage.ERROR)
            raise

        logger.info(
            "Analysis complete: shipment=%s confidence=%.2f",
            result.looks_like_shipment,
            result.confidence,
        )
        self._result = result
        self._transition(FlowStage.RESULT)

    def _transition(self, target: FlowStage) -> None:
        if target not in TRANSITIONS[self._stage]:
            raise InvalidTransition(f"{self._stage.value} -> {target.value}")
        self._stage = target

    def _set_file(self, file: CandidateFile | None) -> None:
        if file is self._file:
            return
        if self._preview_url is not None:
            self._previews.revoke(self._preview_url)
            self._preview_url = None
        self._file = file
        if file is not None:
            self._preview_url = self._previews.create(file)
