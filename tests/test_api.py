import json
from typing import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from founderdesk.exceptions import GenerationFailed, SpeechSynthesisFailed
from founderdesk.main import create_app
from founderdesk.services.speech_client import VOICES, SpeechClient
from founderdesk.settings import Settings
from founderdesk.tools import Toolkit, build_toolkit
from founderdesk.tools.mentor import MENTOR_FALLBACK, MENTOR_GREETING


@pytest.fixture
def speech() -> MagicMock:
    """Mock SpeechClient returning fixed audio."""
    m = MagicMock(spec=SpeechClient)
    m.synthesize = AsyncMock(return_value=b"mp3-bytes")
    m.available_voices = MagicMock(return_value=list(VOICES))
    return m


@pytest.fixture
def toolkit(settings: Settings, mock_model: MagicMock, speech: MagicMock) -> Toolkit:
    """Toolkit over mocked model and speech clients."""
    return build_toolkit(settings, model_client=mock_model, speech_client=speech)


@pytest.fixture
def client(toolkit: Toolkit) -> Iterator[TestClient]:
    """TestClient running the app lifespan around the injected toolkit."""
    with TestClient(create_app(toolkit)) as c:
        yield c


def test_health(client: TestClient) -> None:
    """Health endpoint answers ok."""
    assert client.get("/health").json() == {"status": "ok"}


def test_mentor_message_and_reset(client: TestClient, toolkit: Toolkit) -> None:
    """A mentor turn returns text and history; reset empties it and greets."""
    resp = client.post("/api/mentor/messages", json={"message": "How do I learn ML?"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["session_key"] == "mentor"
    assert body["reply"] == "Start with linear algebra and Python."
    assert [m["role"] for m in body["history"]] == ["user", "assistant"]

    resp = client.post("/api/mentor/reset", json={})
    assert resp.json() == {"session_key": "mentor", "greeting": MENTOR_GREETING}
    assert toolkit.mentor.get_history("mentor") == ()


def test_mentor_blank_message_is_422(client: TestClient, mock_model: MagicMock) -> None:
    """Blank input is rejected with 422 and never reaches the model."""
    resp = client.post("/api/mentor/messages", json={"message": "   "})
    assert resp.status_code == 422
    mock_model.generate.assert_not_called()


def test_mentor_failure_returns_fallback(client: TestClient, mock_model: MagicMock) -> None:
    """Model failures turn into the apology, not an HTTP error."""
    mock_model.generate.side_effect = GenerationFailed("down")
    resp = client.post("/api/mentor/messages", json={"message": "Hello", "session_id": "s1"})
    assert resp.status_code == 200
    assert resp.json()["reply"] == MENTOR_FALLBACK
    assert resp.json()["session_key"] == "mentor:s1"


def test_cofounder_message(client: TestClient, mock_model: MagicMock) -> None:
    """Co-founder replies expose the style's sections."""
    mock_model.generate.return_value = (
        "RESPONSE: Let's dream bigger\nOPPORTUNITIES:\n- Go global\nNEXT STEPS:\n- Hire"
    )
    resp = client.post(
        "/api/cofounder/visionary/messages",
        json={"message": "Where should we go?", "scenario": "product"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["session_key"] == "cofounder-visionary"
    assert body["reply"] == "Let's dream bigger"
    assert body["sections"]["opportunities"] == ["Go global"]
    assert body["sections"]["next_steps"] == ["Hire"]
    assert "reasoning" in body["sections"]


def test_cofounder_unknown_style_is_422(client: TestClient) -> None:
    """Unknown styles are invalid input."""
    resp = client.post("/api/cofounder/optimist/messages", json={"message": "hi"})
    assert resp.status_code == 422


def test_cofounder_reset_with_scenario(client: TestClient) -> None:
    """Reset returns the scenario opening line."""
    resp = client.post("/api/cofounder/devil/reset", json={"scenario": "pivot"})
    body = resp.json()
    assert body["session_key"] == "cofounder-devil"
    assert "pivot" in body["greeting"]


def test_cofounder_catalogues(client: TestClient) -> None:
    """Styles and scenarios are listed for the configuration screen."""
    styles = client.get("/api/cofounder/styles").json()
    assert [s["id"] for s in styles] == ["analytical", "visionary", "pragmatic", "devil"]
    assert styles[3]["name"] == "Devil's Advocate"
    scenarios = client.get("/api/cofounder/scenarios").json()
    assert {s["id"] for s in scenarios} == {"fundraising", "product", "pivot", "hiring"}


def test_market_research_query(client: TestClient, mock_model: MagicMock) -> None:
    """A market query returns a report even when the reply is unstructured."""
    mock_model.generate.return_value = "Nothing structured here."
    resp = client.post("/api/market-research/queries", json={"message": "solar"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["session_key"] == "market_research"
    assert body["query"] == "solar"
    assert len(body["search_results"]) == 3
    assert body["analysis"]["key_trends"]
    assert body["competitive_analysis"]["market_share"]["leader"]

    resp = client.post("/api/market-research/reset", json={})
    assert resp.json()["greeting"].startswith("Hi! I'm your Market Research Assistant")


def test_speech(client: TestClient, speech: MagicMock) -> None:
    """Speech returns audio bytes with the matching media type."""
    resp = client.post("/api/speech", json={"text": "Hello", "voice_id": VOICES[1].id})
    assert resp.status_code == 200
    assert resp.content == b"mp3-bytes"
    assert resp.headers["content-type"] == "audio/mpeg"
    speech.synthesize.assert_awaited_once_with("Hello", voice_id=VOICES[1].id, output_format="mp3")


def test_speech_failure_is_502(client: TestClient, speech: MagicMock) -> None:
    """TTS failures map to 502."""
    speech.synthesize.side_effect = SpeechSynthesisFailed("no key")
    resp = client.post("/api/speech", json={"text": "Hello"})
    assert resp.status_code == 502


def test_speech_voices(client: TestClient) -> None:
    """The voice catalogue is listed."""
    voices = client.get("/api/speech/voices").json()
    assert [v["name"] for v in voices] == ["Default Voice", "Sarah", "Mark"]


def test_ws_chat_cofounder(client: TestClient, mock_model: MagicMock) -> None:
    """The WebSocket endpoint runs one turn and replies with sections."""
    mock_model.generate.return_value = "RESPONSE: Ship it\nNEXT STEPS:\n- Launch"
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text(
            json.dumps({"tool": "cofounder", "style": "pragmatic", "message": "Ready?"})
        )
        data = ws.receive_json()
    assert data["type"] == "reply"
    assert data["session_key"] == "cofounder-pragmatic"
    assert data["reply"] == "Ship it"
    assert data["sections"]["next_steps"] == ["Launch"]


def test_ws_chat_errors(client: TestClient) -> None:
    """Bad JSON, unknown tools and blank messages get an error frame."""
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "data": "Invalid JSON payload"}
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text(json.dumps({"tool": "oracle", "message": "hi"}))
        assert ws.receive_json()["type"] == "error"
    with client.websocket_connect("/ws/chat") as ws:
        ws.send_text(json.dumps({"tool": "mentor", "message": " "}))
        assert ws.receive_json()["type"] == "error"
