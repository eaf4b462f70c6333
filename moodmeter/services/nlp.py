# moodmeter/services/nlp.py
from __future__ import annotations

import re
from typing import Optional

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

# ---- Offline energy estimate (VADER) ----
# Used when the LLM can't be reached. VADER measures valence, so we read
# activation off its intensity: how strongly charged the text is, either way.

_ANALYZER: Optional[SentimentIntensityAnalyzer] = None
_URL_RE = re.compile(r"https?://\S+|www\.\S+", re.I)
_MENTION_RE = re.compile(r"[@#]\w+", re.U)
_WORD_RE = re.compile(r"[A-Za-z]{3,}")

NEUTRAL_ENERGY = 0.5

def _get_analyzer() -> SentimentIntensityAnalyzer:
    global _ANALYZER
    if _ANALYZER is None:
        _ANALYZER = SentimentIntensityAnalyzer()
    return _ANALYZER

def _normalize_for_sentiment(text: str) -> str:
    if not isinstance(text, str): return ""
    s = text.strip()
    s = _URL_RE.sub("", s)
    s = _MENTION_RE.sub(lambda m: m.group(0)[1:], s)  # drop @/# symbol, keep word
    return s

def _emphasis(text: str) -> float:
    """Exclamation marks and shouted words push activation up a little."""
    bangs = min(text.count("!"), 3) * 0.05
    words = _WORD_RE.findall(text)
    shouted = sum(1 for w in words if w.isupper())
    caps = 0.1 if words and shouted / len(words) >= 0.3 else 0.0
    return bangs + caps

def estimate_energy(text: str) -> float:
    """
    Heuristic energy in [0, 1] from VADER scores.
    Flat, factual text lands near 0.2; strongly charged text climbs toward 1.
    Empty text is balanced (0.5).
    """
    s = _normalize_for_sentiment(text)
    if not s:
        return NEUTRAL_ENERGY
    scores = _get_analyzer().polarity_scores(s)
    intensity = abs(float(scores["compound"])) * 0.55
    charged = (1.0 - float(scores["neu"])) * 0.15
    energy = 0.2 + intensity + charged + _emphasis(s)
    return round(max(0.0, min(1.0, energy)), 3)
