#!/usr/bin/env python3
# scripts/seed_entries.py
from __future__ import annotations

import argparse
import logging
import os, sys
from datetime import date, timedelta
from functools import partial
from typing import List

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from moodmeter.config import configure_logging
from moodmeter.errors import ApiError
from moodmeter.services.composer import AnalysisState, Composer
from moodmeter.services.llm import EnergyAnalysis, analyze_energy
from moodmeter.services.nlp import estimate_energy
from moodmeter.services.spectrum import hsl_to_hex
from moodmeter.services.storage import init_db, insert_entry, reset_user_data

logger = logging.getLogger("seed_entries")

# A week of ups and downs across the whole spectrum
SAMPLES: List[str] = [
    "Could barely get out of bed. Everything feels heavy and far away.",
    "Quiet evening with tea and a book. A little wistful, but calm.",
    "Normal day at work. Lunch with Sam, finished the report, nothing special.",
    "Big presentation tomorrow and I can't sit still. Half nervous, half excited.",
    "WE SHIPPED IT!!! Team dinner, music, I'm buzzing and can't sleep.",
    "Long walk in the rain. Thought about Grandma a lot. Missing her.",
    "Cleaned the flat, planned next week, feel steady and ready for Monday.",
]

def _local_analyzer(text: str) -> EnergyAnalysis:
    return EnergyAnalysis(energy=estimate_energy(text), reasoning="Estimated offline.")

def seed(user_id: str, days: int = 7, wipe: bool = False, use_llm: bool = False) -> None:
    """Seed `days` entries ending today, one per day, oldest first."""
    init_db()
    if wipe:
        reset_user_data(user_id)

    composer = Composer(analyzer=analyze_energy if use_llm else _local_analyzer)
    persist = partial(insert_entry, user_id)
    data = (SAMPLES * ((days + len(SAMPLES) - 1) // len(SAMPLES)))[:days]
    today = date.today()

    for idx, text in enumerate(data):
        day = (today - timedelta(days=days - 1 - idx)).isoformat()
        composer.set_text(text)
        if composer.submit() != AnalysisState.COMPLETE:
            print(f"[SKIP] {day}  {composer.error}")
            composer.reset()
            continue
        entry = composer.save(persist, day)
        if entry is None:
            print(f"[FAIL] {day}  {composer.error}")
            composer.reset()
            continue
        print(f"[OK] {day}  {entry.energy_level.value:<9} {entry.energy_value:.2f}  {hsl_to_hex(entry.color)}")

def main():
    ap = argparse.ArgumentParser(description="Seed sample mood entries for a user.")
    ap.add_argument("--user-id", type=str, default="demo", help="Seed entries for this user id (default demo).")
    ap.add_argument("--days", type=int, default=7, help="How many days to seed (default 7).")
    ap.add_argument("--wipe", action="store_true", help="Delete this user's existing entries first.")
    ap.add_argument("--use-llm", action="store_true", help="Analyse with the local LLM instead of the offline estimate.")
    args = ap.parse_args()

    configure_logging()
    print(f"Seeding {args.days} day(s) into user_id={args.user_id}  (wipe={args.wipe})  llm={args.use_llm}")
    try:
        seed(args.user_id, days=max(1, args.days), wipe=bool(args.wipe), use_llm=bool(args.use_llm))
    except ApiError as e:
        print(f"Seeding failed: {e.message}")
        sys.exit(1)
    print("Done.")

if __name__ == "__main__":
    main()
