# moodmeter/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class HSLColor:
    h: int  # hue, 0-360
    s: int  # saturation, 0-100
    l: int  # lightness, 0-100


class EnergyLevel(str, Enum):
    DEPLETED = "depleted"  # 0-20%  deep blues
    LOW = "low"            # 20-40% teals
    BALANCED = "balanced"  # 40-60% greens
    ELEVATED = "elevated"  # 60-80% yellows
    HIGH = "high"          # 80-100% oranges, corals


@dataclass(frozen=True)
class EntryDraft:
    """An entry as composed, before the persistence layer assigns id/created_at."""
    text: str
    date: str  # YYYY-MM-DD
    color: HSLColor
    energy: float
    ai_generated: bool = True
    reasoning: Optional[str] = None


@dataclass(frozen=True)
class MoodEntry:
    id: int
    user_id: str
    text: str
    color: HSLColor
    energy_level: EnergyLevel
    energy_value: float
    ai_generated: bool
    date: str
    created_at: str
    reasoning: Optional[str] = None


@dataclass(frozen=True)
class DayMood:
    date: str
    dominant_color: HSLColor
    energy_level: EnergyLevel
    entry_count: int
    entries: List[MoodEntry] = field(default_factory=list)


class PendingStatus(str, Enum):
    PENDING = "pending"
    SYNCING = "syncing"
    FAILED = "failed"


@dataclass(frozen=True)
class PendingEntry:
    local_id: str
    text: str
    date: str
    created_at: str
    status: PendingStatus = PendingStatus.PENDING
    color: Optional[HSLColor] = None
    energy: Optional[float] = None
    ai_generated: bool = False
    reasoning: Optional[str] = None
