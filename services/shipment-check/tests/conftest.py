"""Shared test fixtures for shipment check tests."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import AnalysisResult, CandidateFile  # noqa: E402


@pytest.fixture
def jpeg_file() -> CandidateFile:
    """A small JPEG candidate; content is not a real image, only metadata matters."""
    return CandidateFile.from_bytes("shipment.jpg", "image/jpeg", b"\xff\xd8\xff\xe0fake-jpeg")


@pytest.fixture
def png_file() -> CandidateFile:
    return CandidateFile.from_bytes("pallet.png", "image/png", b"\x89PNGfake-png")


@pytest.fixture
def gif_file() -> CandidateFile:
    return CandidateFile.from_bytes("animated.gif", "image/gif", b"GIF89a")


@pytest.fixture
def shipment_result() -> AnalysisResult:
    return AnalysisResult(
        looks_like_shipment=True,
        confidence=0.9,
        summary="Two pallets, wrapping intact.",
    )


class FakeAnalysisClient:
    """Stands in for AnalysisClient; returns or raises queued outcomes in order."""

    def __init__(self, *outcomes, gate=None):
        self.outcomes = list(outcomes)
        self.calls = []
        self.gate = gate

    async def analyze(self, file):
        self.calls.append(file)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def fake_client_factory():
    return FakeAnalysisClient
