"""Tests for the LLM energy analysis collaborator."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from moodmeter.errors import ApiError, ErrorCode
from moodmeter.models import EnergyLevel
from moodmeter.services import llm
from moodmeter.services.llm import EnergyAnalysis, analyze_energy, parse_analysis_payload
from moodmeter.services.spectrum import energy_to_color


def _response(status=200, body=None, headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.json.return_value = body if body is not None else {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error", response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


def test_analyze_energy_success():
    """A well-formed model reply becomes an EnergyAnalysis."""
    body = {"response": '{"energy": 0.72, "reasoning": "Restless, wired anticipation."}'}
    with patch("moodmeter.services.llm.requests.post", return_value=_response(body=body)) as post:
        result = analyze_energy("Can't sit still before the show")

    assert result == EnergyAnalysis(energy=0.72, reasoning="Restless, wired anticipation.")
    assert result.level == EnergyLevel.ELEVATED
    assert result.color == energy_to_color(0.72)
    assert len(result.alternatives) == 5
    sent = post.call_args.kwargs["json"]
    assert sent["format"] == "json"
    assert "Can't sit still before the show" in sent["prompt"]
    assert llm.get_last_llm_status()["path"] == "llm_ok"


def test_analyze_energy_unwraps_fenced_json():
    """Markdown fences around the JSON are tolerated."""
    body = {"response": 'Sure!\n```json\n{"energy": 0.1, "reasoning": "Worn out.",}\n```'}
    with patch("moodmeter.services.llm.requests.post", return_value=_response(body=body)):
        result = analyze_energy("so tired")
    assert result.energy == 0.1


@pytest.mark.parametrize("text", ["", "   "])
def test_blank_text_rejected_before_request(text):
    """Blank entries never hit the network."""
    with patch("moodmeter.services.llm.requests.post") as post:
        with pytest.raises(ApiError) as exc:
            analyze_energy(text)
    assert exc.value.code == ErrorCode.INVALID_INPUT
    post.assert_not_called()


@pytest.mark.parametrize("status, code", [
    (429, ErrorCode.RATE_LIMITED),
    (503, ErrorCode.AI_UNAVAILABLE),
    (529, ErrorCode.AI_UNAVAILABLE),
    (401, ErrorCode.AI_UNAVAILABLE),
    (403, ErrorCode.AI_UNAVAILABLE),
    (400, ErrorCode.INVALID_INPUT),
    (500, ErrorCode.UNKNOWN),
])
def test_http_errors_map_to_codes(status, code):
    """HTTP failures map onto the shared error taxonomy."""
    with patch("moodmeter.services.llm.requests.post", return_value=_response(status=status)):
        with pytest.raises(ApiError) as exc:
            analyze_energy("hello")
    assert exc.value.code == code


def test_rate_limit_retry_after():
    """Retry-After seconds are carried on the error."""
    resp = _response(status=429, headers={"retry-after": "12"})
    with patch("moodmeter.services.llm.requests.post", return_value=resp):
        with pytest.raises(ApiError) as exc:
            analyze_energy("hello")
    assert exc.value.retry_after == 12
    assert exc.value.to_dict()["retry_after"] == 12


@pytest.mark.parametrize("err", [
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.ReadTimeout("slow"),
    requests.exceptions.ChunkedEncodingError("stream cut"),
    requests.exceptions.TooManyRedirects("loop"),
    requests.exceptions.InvalidURL("bad host"),
])
def test_connection_problems_are_network(err):
    """Transport failures of any kind surface as NETWORK."""
    with patch("moodmeter.services.llm.requests.post", side_effect=err):
        with pytest.raises(ApiError) as exc:
            analyze_energy("hello")
    assert exc.value.code == ErrorCode.NETWORK


def test_garbage_reply_is_unknown():
    """Non-JSON model output is rejected as UNKNOWN."""
    body = {"response": "I feel like this person is tired."}
    with patch("moodmeter.services.llm.requests.post", return_value=_response(body=body)):
        with pytest.raises(ApiError) as exc:
            analyze_energy("hello")
    assert exc.value.code == ErrorCode.UNKNOWN
    assert llm.get_last_llm_status()["path"] == "error"


def test_undecodable_body_is_unknown():
    """A body that is not JSON at all is UNKNOWN, not a network problem."""
    resp = _response()
    resp.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
    with patch("moodmeter.services.llm.requests.post", return_value=resp):
        with pytest.raises(ApiError) as exc:
            analyze_energy("hello")
    assert exc.value.code == ErrorCode.UNKNOWN


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"reasoning": "no energy"},
    {"energy": "0.5", "reasoning": "string energy"},
    {"energy": True, "reasoning": "bool energy"},
    {"energy": 1.5, "reasoning": "too high"},
    {"energy": -0.1, "reasoning": "too low"},
    {"energy": 0.5},
    {"energy": 0.5, "reasoning": 42},
    {"energy": 0.5, "reasoning": "x" * 201},
])
def test_parse_analysis_payload_rejects_bad_shapes(payload):
    """Anything off-shape is UNKNOWN, never passed on."""
    with pytest.raises(ApiError) as exc:
        parse_analysis_payload(payload)
    assert exc.value.code == ErrorCode.UNKNOWN


def test_parse_analysis_payload_accepts_bounds():
    """0 and 1 are valid energies; ints are accepted."""
    assert parse_analysis_payload({"energy": 0, "reasoning": "still"}).energy == 0.0
    assert parse_analysis_payload({"energy": 1, "reasoning": " max "}).reasoning == "max"
