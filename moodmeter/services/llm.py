# moodmeter/services/llm.py
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from moodmeter import config
from moodmeter.errors import ApiError, ErrorCode
from moodmeter.models import EnergyLevel, HSLColor
from moodmeter.services.spectrum import energy_to_color, energy_to_level, generate_alternatives

logger = logging.getLogger(__name__)

MAX_REASONING_CHARS = 200


# ---- Config (Ollama only) ----
def _ollama_url() -> str:
    return os.getenv("OLLAMA_URL") or config.OLLAMA_URL

def _model() -> str:
    return os.getenv("LLM_MODEL") or config.LLM_MODEL

# ---- Status for debugging (ok/error + short raw sample) ----
_LAST_STATUS: dict = {}

def get_last_llm_status() -> dict:
    return _LAST_STATUS or {"path": "unknown"}


_ENERGY_SYSTEM = (
    "You are helping someone understand the emotional energy in their journal entry.\n"
    "Read their words with care. Sense the energy level: not whether they are happy or sad,\n"
    "but how much activation is present.\n"
    "\n"
    "Energy spectrum:\n"
    "  - Depleted (0.0-0.2): exhausted, numb, withdrawn, can barely move\n"
    "  - Low (0.2-0.4): melancholy, calm, reflective, quiet\n"
    "  - Balanced (0.4-0.6): steady, present, okay, neutral\n"
    "  - Elevated (0.6-0.8): energized, anxious, excited, restless\n"
    "  - High (0.8-1.0): buzzing, intense, passionate, overwhelmed\n"
    "\n"
    "Anxiety and excitement both live in the elevated/high range. Grief and peaceful solitude\n"
    "both live in the low range. Energy is not about good or bad.\n"
    "\n"
    "Output (strict JSON): {\"energy\": number 0-1, \"reasoning\": str}\n"
    "reasoning: brief, gentle explanation of what you sensed (1-2 sentences, under 200 chars).\n"
    "Return only the JSON."
)


@dataclass(frozen=True)
class EnergyAnalysis:
    energy: float
    reasoning: str

    @property
    def color(self) -> HSLColor:
        return energy_to_color(self.energy)

    @property
    def level(self) -> EnergyLevel:
        return energy_to_level(self.energy)

    @property
    def alternatives(self) -> List[HSLColor]:
        return generate_alternatives(self.energy, 5)


# ---- Helpers ----
def _extract_json(text: str) -> Optional[Dict[str, Any]]:
    """Turn model output into JSON dict (unwrap fences, fix trailing commas/smart quotes)."""
    def load_try(s: str) -> Optional[Dict[str, Any]]:
        try:
            obj = json.loads(s)
        except ValueError:
            return None
        return obj if isinstance(obj, dict) else None

    if not isinstance(text, str) or not text.strip():
        return None
    s = text.strip()

    fence = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", s, flags=re.S | re.I)
    if fence:
        s = fence.group(1).strip()

    obj = load_try(s)
    if obj:
        return obj

    block = re.search(r"\{[\s\S]*\}", s)
    if block:
        s = block.group(0)

    s = re.sub(r",\s*([}\]])", r"\1", s)
    s = s.replace("“", '"').replace("”", '"').replace("’", "'")
    return load_try(s)


def parse_analysis_payload(data: Any) -> EnergyAnalysis:
    """
    Validate an untrusted model payload before any field reaches the spectrum.
    Anything off-shape is UNKNOWN; nothing is coerced.
    """
    if not isinstance(data, dict):
        raise ApiError(ErrorCode.UNKNOWN, "analysis payload is not an object")

    energy = data.get("energy")
    if isinstance(energy, bool) or not isinstance(energy, (int, float)):
        raise ApiError(ErrorCode.UNKNOWN, f"energy is not a number: {energy!r}")
    if not 0.0 <= float(energy) <= 1.0:
        raise ApiError(ErrorCode.UNKNOWN, f"energy out of range: {energy!r}")

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str):
        raise ApiError(ErrorCode.UNKNOWN, "reasoning is not a string")
    reasoning = reasoning.strip()
    if len(reasoning) > MAX_REASONING_CHARS:
        raise ApiError(ErrorCode.UNKNOWN, f"reasoning too long ({len(reasoning)} chars)")

    return EnergyAnalysis(energy=float(energy), reasoning=reasoning)


def _retry_after(resp: Optional[requests.Response]) -> Optional[int]:
    if resp is None:
        return None
    raw = resp.headers.get("retry-after")
    try:
        return int(raw) if raw else None
    except ValueError:
        return None


def _map_http_error(err: requests.exceptions.HTTPError) -> ApiError:
    resp = err.response
    status = resp.status_code if resp is not None else None
    if status == 429:
        return ApiError(ErrorCode.RATE_LIMITED, str(err), retry_after=_retry_after(resp))
    if status in (503, 529):
        return ApiError(ErrorCode.AI_UNAVAILABLE, str(err))
    if status == 400:
        return ApiError(ErrorCode.INVALID_INPUT, str(err))
    if status in (401, 403):
        # don't leak provider auth problems to the user
        return ApiError(ErrorCode.AI_UNAVAILABLE, str(err))
    return ApiError(ErrorCode.UNKNOWN, str(err))


def _ollama_generate(prompt: str) -> str:
    r = requests.post(
        f"{_ollama_url()}/api/generate",
        json={
            "model": _model(),
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": 0.2,
                "top_p": 0.9,
                "num_ctx": 4096,
                "num_predict": 160,
            },
        },
        timeout=config.LLM_TIMEOUT_SEC,
    )
    r.raise_for_status()
    data = r.json()
    return data.get("response", "") if isinstance(data, dict) else ""


# ---- Public ----
def analyze_energy(text: str) -> EnergyAnalysis:
    """
    Ask the model for the energy in a journal entry.
    Raises ApiError; INVALID_INPUT is raised before any request for blank text.
    """
    if not isinstance(text, str) or not text.strip():
        raise ApiError(ErrorCode.INVALID_INPUT, "empty entry text")

    _LAST_STATUS.clear()
    _LAST_STATUS.update({"provider": "ollama", "model": _model(), "path": ""})
    prompt = f"{_ENERGY_SYSTEM}\n\nJOURNAL ENTRY:\n{text.strip()}\n"

    try:
        raw = _ollama_generate(prompt)
    except requests.exceptions.HTTPError as e:
        err = _map_http_error(e)
        _LAST_STATUS.update({"path": "error", "reason": err.code.value})
        logger.warning("energy analysis failed: %s (%s)", err.code.value, e)
        raise err from e
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
        _LAST_STATUS.update({"path": "error", "reason": ErrorCode.NETWORK.value})
        logger.warning("energy analysis unreachable: %s", e)
        raise ApiError(ErrorCode.NETWORK, str(e)) from e
    except ValueError as e:
        # body was not JSON
        _LAST_STATUS.update({"path": "error", "reason": "invalid response body"})
        raise ApiError(ErrorCode.UNKNOWN, str(e)) from e
    except requests.exceptions.RequestException as e:
        # dropped streams, redirect loops, bad URLs
        _LAST_STATUS.update({"path": "error", "reason": ErrorCode.NETWORK.value})
        logger.warning("energy analysis request failed: %s", e)
        raise ApiError(ErrorCode.NETWORK, str(e)) from e

    data = _extract_json(raw)
    try:
        analysis = parse_analysis_payload(data)
    except ApiError as e:
        _LAST_STATUS.update({"path": "error", "reason": e.detail, "raw_sample": (raw or "")[:180]})
        logger.warning("rejected analysis payload: %s", e.detail)
        raise

    _LAST_STATUS.update({"path": "llm_ok", "raw_sample": (raw or "")[:180]})
    logger.debug("energy analysis ok: %.2f", analysis.energy)
    return analysis
