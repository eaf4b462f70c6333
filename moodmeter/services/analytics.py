# moodmeter/services/analytics.py
from __future__ import annotations
from typing import Dict

import pandas as pd

from moodmeter.models import DayMood, EnergyLevel
from moodmeter.services.spectrum import hsl_to_hex

_LEVEL_ORDER = [lvl.value for lvl in EnergyLevel]


def energy_by_day(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=float)
    d = df.copy()
    d["date"] = pd.to_datetime(d["entry_date"]).dt.date
    return d.groupby("date")["energy_value"].mean().rename("avg_energy")


def level_distribution(df: pd.DataFrame) -> pd.Series:
    """Entry counts per energy level, always in spectrum order."""
    if df.empty:
        return pd.Series(0, index=_LEVEL_ORDER, name="entries")
    counts = df["energy_level"].value_counts().reindex(_LEVEL_ORDER, fill_value=0)
    return counts.rename("entries")


def adjusted_share(df: pd.DataFrame) -> float:
    """Fraction of entries where the user moved off the AI's suggestion."""
    if df.empty:
        return 0.0
    return float((~df["ai_generated"].astype(bool)).mean())


def day_moods_frame(days: Dict[str, DayMood]) -> pd.DataFrame:
    """One row per calendar day, as built by calendar.build_day_moods."""
    cols = ["date", "entry_count", "energy_level", "hex"]
    if not days:
        return pd.DataFrame(columns=cols)
    rows = [
        (d.date, d.entry_count, d.energy_level.value, hsl_to_hex(d.dominant_color))
        for d in days.values()
    ]
    return pd.DataFrame(rows, columns=cols).sort_values("date").reset_index(drop=True)


def day_level_counts(days: Dict[str, DayMood]) -> pd.Series:
    """How many days settled on each level, in spectrum order."""
    df = day_moods_frame(days)
    if df.empty:
        return pd.Series(0, index=_LEVEL_ORDER, name="days")
    return df["energy_level"].value_counts().reindex(_LEVEL_ORDER, fill_value=0).rename("days")
