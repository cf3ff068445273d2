import json
from typing import Any, List, Union

import pytest
from typer.testing import CliRunner

from auracli.domain.interfaces.transport import Transport
from auracli.domain.interfaces.user_interface import UserInterface
from auracli.domain.models.errors import TransportError
from auracli.domain.models.request import RequestDescriptor, TransportResponse

Outcome = Union[TransportResponse, Exception]


class ScriptedTransport(Transport):
    """Replays a fixed list of outcomes; the last one repeats forever."""

    def __init__(self, outcomes: List[Outcome]):
        assert outcomes, "at least one outcome is required"
        self.outcomes = list(outcomes)
        self.sent: List[RequestDescriptor] = []
        self.closed = False

    async def send(self, descriptor: RequestDescriptor) -> TransportResponse:
        self.sent.append(descriptor)
        index = min(len(self.sent) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


def json_response(payload: Any, status_code: int = 200) -> TransportResponse:
    return TransportResponse(status_code=status_code, body=json.dumps(payload).encode("utf-8"))


def gemini_text_payload(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


ANALYSIS_DOCUMENT = {
    "auraScore": 742,
    "faceType": "Oval",
    "clinicalRoadmap": [
        {"name": "Microneedling", "benefit": "Texture", "rationale": "Fine lines", "estimatedValue": "$3,200"},
        {"name": "Laser Genesis", "benefit": "Tone", "rationale": "Redness", "estimatedValue": "$1,800"},
    ],
    "halos": ["glow"],
}


@pytest.fixture
def scripted_transport():
    """Factory fixture: scripted_transport([outcome, ...]) -> ScriptedTransport."""
    return ScriptedTransport


@pytest.fixture
def connection_refused():
    return TransportError("ConnectError: connection refused")


@pytest.fixture
def recorded_sleep():
    """Returns (sleep, delays): an awaitable that records instead of waiting."""
    delays: List[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    return sleep, delays


@pytest.fixture
def ok_json():
    return json_response


@pytest.fixture
def analysis_payload():
    """A full generateContent envelope with the nested diagnostic as text."""
    text = "Here is the diagnostic:\n" + json.dumps(ANALYSIS_DOCUMENT, indent=2) + "\nEnd."
    return gemini_text_payload(text)


@pytest.fixture
def mock_ui(mocker):
    return mocker.MagicMock(spec=UserInterface)


@pytest.fixture
def photo_file(tmp_path):
    path = tmp_path / "face.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake-image-bytes")
    return path


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()
