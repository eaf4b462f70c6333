# moodmeter/services/composer.py
"""Composition state machine for a single journal entry being written."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

from moodmeter.errors import ApiError, ErrorCode, user_message
from moodmeter.models import EnergyLevel, EntryDraft, HSLColor, MoodEntry
from moodmeter.services.llm import EnergyAnalysis, analyze_energy
from moodmeter.services.nlp import estimate_energy
from moodmeter.services.spectrum import (
    alternative_energies,
    energy_to_color,
    energy_to_level,
    generate_alternatives,
)

logger = logging.getLogger(__name__)

Analyzer = Callable[[str], EnergyAnalysis]
Persist = Callable[[EntryDraft], MoodEntry]


class AnalysisState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class Source(str, Enum):
    """Where the suggested energy came from."""
    AI = "ai"
    LOCAL = "local"


class Composer:
    """
    One composing session. Sessions are independent objects; nothing is shared
    between them, so several can be open at once (e.g. one per browser tab).

    idle -> analyzing -> complete | error
    complete -> idle (edit), error -> analyzing (resubmit), error -> idle (text edit)
    """

    ALTERNATIVE_COUNT = 5

    def __init__(self, analyzer: Optional[Analyzer] = None, text: str = ""):
        self.analyzer: Analyzer = analyzer or analyze_energy
        self._request_id = 0
        self.reset()
        self.text = text

    def reset(self) -> None:
        """Back to the empty initial state; any in-flight analysis becomes stale."""
        self.text = ""
        self.suggested_color: Optional[HSLColor] = None
        self.reasoning: Optional[str] = None
        self.alternatives: List[HSLColor] = []
        self.adjusted_color: Optional[HSLColor] = None
        self.adjusted_energy: Optional[float] = None
        self.energy: Optional[float] = None
        self.source: Optional[Source] = None
        self.analysis_state = AnalysisState.IDLE
        self.error: Optional[str] = None
        self.retry_after: Optional[int] = None
        self._request_id += 1

    # ---- derived ----
    @property
    def final_color(self) -> Optional[HSLColor]:
        return self.adjusted_color if self.adjusted_color is not None else self.suggested_color

    @property
    def final_energy(self) -> Optional[float]:
        return self.adjusted_energy if self.adjusted_energy is not None else self.energy

    @property
    def energy_level(self) -> Optional[EnergyLevel]:
        e = self.final_energy
        return energy_to_level(e) if e is not None else None

    @property
    def can_submit(self) -> bool:
        return bool(self.text.strip()) and self.analysis_state in (AnalysisState.IDLE, AnalysisState.ERROR)

    @property
    def ai_generated(self) -> bool:
        """True only for an AI suggestion the user kept as-is."""
        return self.source == Source.AI and self.adjusted_color is None

    # ---- text ----
    def set_text(self, text: str) -> None:
        self.text = text
        if self.analysis_state == AnalysisState.ERROR:
            self._clear_error()
            self.analysis_state = AnalysisState.IDLE

    def _clear_error(self) -> None:
        self.error = None
        self.retry_after = None

    def edit(self) -> None:
        """Back to the text view after a completed analysis. Text is kept."""
        if self.analysis_state == AnalysisState.COMPLETE:
            self.analysis_state = AnalysisState.IDLE
            self._clear_error()

    # ---- analysis ----
    def begin_analysis(self) -> Optional[int]:
        """
        Enter ANALYZING and return a request tag, or None if submitting isn't
        allowed right now (blank text, or an analysis already in flight).
        """
        if not self.can_submit:
            return None
        self._request_id += 1
        self.analysis_state = AnalysisState.ANALYZING
        self.error = None
        self.retry_after = None
        # a fresh analysis replaces whatever was suggested for the old text
        self.suggested_color = None
        self.reasoning = None
        self.alternatives = []
        self.adjusted_color = None
        self.adjusted_energy = None
        self.energy = None
        self.source = None
        return self._request_id

    def _is_current(self, request_id: int) -> bool:
        return request_id == self._request_id and self.analysis_state == AnalysisState.ANALYZING

    def complete_analysis(self, request_id: int, analysis: EnergyAnalysis) -> bool:
        """Apply a result. Returns False (and changes nothing) for a stale request."""
        if not self._is_current(request_id):
            logger.debug("dropping stale analysis result (request %s)", request_id)
            return False
        self._apply_energy(analysis.energy, analysis.reasoning, Source.AI)
        return True

    def fail_analysis(self, request_id: int, error) -> bool:
        if not self._is_current(request_id):
            logger.debug("dropping stale analysis failure (request %s)", request_id)
            return False
        if isinstance(error, ApiError):
            code, self.retry_after = error.code, error.retry_after
        else:
            code, self.retry_after = ErrorCode(error), None
        self.error = user_message(code)
        self.analysis_state = AnalysisState.ERROR
        return True

    def submit(self) -> AnalysisState:
        """Run one analysis of the current text through the analyzer."""
        request_id = self.begin_analysis()
        if request_id is None:
            return self.analysis_state
        try:
            result = self.analyzer(self.text.strip())
        except ApiError as e:
            self.fail_analysis(request_id, e)
        except Exception:
            logger.exception("energy analysis crashed")
            self.fail_analysis(request_id, ErrorCode.NETWORK)
        else:
            self.complete_analysis(request_id, result)
        return self.analysis_state

    def use_local_estimate(self, estimator: Callable[[str], float] = estimate_energy) -> bool:
        """Offline fallback after a failed analysis: estimate energy on-device."""
        if self.analysis_state != AnalysisState.ERROR or not self.text.strip():
            return False
        self._request_id += 1
        self.error = None
        self.retry_after = None
        self._apply_energy(estimator(self.text.strip()), None, Source.LOCAL)
        return True

    def _apply_energy(self, energy: float, reasoning: Optional[str], source: Source) -> None:
        self.energy = energy
        self.suggested_color = energy_to_color(energy)
        self.alternatives = generate_alternatives(energy, self.ALTERNATIVE_COUNT)
        self.reasoning = reasoning
        self.source = source
        self.adjusted_color = None
        self.adjusted_energy = None
        self.analysis_state = AnalysisState.COMPLETE

    # ---- adjustment ----
    def adjust_energy(self, energy: float) -> Optional[HSLColor]:
        """Slider drag: the adjusted colour goes through the same spectrum as the AI's."""
        if self.analysis_state != AnalysisState.COMPLETE:
            return None
        self._clear_error()
        self.adjusted_energy = max(0.0, min(1.0, energy))
        self.adjusted_color = energy_to_color(self.adjusted_energy)
        return self.adjusted_color

    def choose_alternative(self, index: int) -> Optional[HSLColor]:
        if self.analysis_state != AnalysisState.COMPLETE or self.energy is None:
            return None
        energies = alternative_energies(self.energy, self.ALTERNATIVE_COUNT)
        if not 0 <= index < len(energies):
            raise IndexError(f"alternative {index} out of range")
        return self.adjust_energy(energies[index])

    def clear_adjustment(self) -> None:
        self.adjusted_color = None
        self.adjusted_energy = None

    # ---- hand-off ----
    def to_draft(self, entry_date: str) -> EntryDraft:
        if self.analysis_state != AnalysisState.COMPLETE or self.final_color is None:
            raise ApiError(ErrorCode.INVALID_INPUT, "entry has not been analysed yet")
        return EntryDraft(
            text=self.text.strip(),
            date=entry_date,
            color=self.final_color,
            energy=self.final_energy,
            ai_generated=self.ai_generated,
            reasoning=self.reasoning,
        )

    def save(self, persist: Persist, entry_date: str) -> Optional[MoodEntry]:
        """
        Hand the finished entry to the persistence collaborator and start over.
        On failure the session is kept as-is with a user-facing error.
        """
        draft = self.to_draft(entry_date)
        self._clear_error()
        try:
            entry = persist(draft)
        except ApiError as e:
            logger.warning("saving entry failed: %s", e.code.value)
            self.error = e.message
            self.retry_after = e.retry_after
            return None
        self.reset()
        return entry

    def defer(self, enqueue: Callable[..., str], entry_date: str) -> Optional[str]:
        """Park the text in the offline queue for a later sync, then start over."""
        if not self.text.strip() or self.analysis_state == AnalysisState.ANALYZING:
            return None
        local_id = enqueue(
            text=self.text.strip(),
            entry_date=entry_date,
            color=self.final_color,
            energy=self.final_energy,
            ai_generated=self.ai_generated,
            reasoning=self.reasoning,
        )
        self.reset()
        return local_id
