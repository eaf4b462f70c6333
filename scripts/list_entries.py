#!/usr/bin/env python3
# scripts/list_entries.py
from __future__ import annotations

import argparse
import os, sys
from textwrap import shorten

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from moodmeter.config import DB_PATH, configure_logging
from moodmeter.errors import ApiError
from moodmeter.services.analytics import day_level_counts
from moodmeter.services.calendar import CalendarMonth, current_month, get_month_moods
from moodmeter.services.spectrum import hsl_to_hex
from moodmeter.services.storage import list_user_ids

def main():
    ap = argparse.ArgumentParser(description="Print one month of day moods for a user.")
    ap.add_argument("--user-id", type=str, help="User id (default: most recently active).")
    ap.add_argument("--month", type=str, help="YYYY-MM (default: this month).")
    args = ap.parse_args()

    configure_logging()
    if not os.path.exists(DB_PATH):
        print(f"No DB found at {DB_PATH}. Run scripts/seed_entries.py first.")
        return

    users = list_user_ids()
    if not users:
        print("No entries in DB yet.")
        return
    user_id = args.user_id or users[0]["user_id"]

    try:
        month = CalendarMonth.parse(args.month) if args.month else current_month()
        days = get_month_moods(user_id, month)
    except ApiError as e:
        print(e.message)
        sys.exit(1)

    print(f"{month.label} for {user_id}")
    print(f"{'date':<10} | {'n':>2} | {'level':<9} | {'color':<7} | latest")
    print("-" * 72)
    for day in days.values():
        latest = day.entries[-1]
        print(f"{day.date:<10} | {day.entry_count:>2} | {day.energy_level.value:<9} | "
              f"{hsl_to_hex(day.dominant_color):<7} | {shorten(latest.text, 30)}")

    counts = day_level_counts(days)
    print("-" * 72)
    print(f"{len(days)} days logged: " + ", ".join(f"{lvl} {n}" for lvl, n in counts.items() if n))

if __name__ == "__main__":
    main()
