# moodmeter/services/storage.py
import logging
import os
import re
import sqlite3
from typing import Any, Dict, List, Optional

import pandas as pd

from moodmeter.config import DB_PATH
from moodmeter.errors import ApiError, ErrorCode
from moodmeter.models import EnergyLevel, EntryDraft, HSLColor, MoodEntry, PendingEntry, PendingStatus
from moodmeter.services.spectrum import energy_to_level

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_ENTRY_COLS = (
    "id, user_id, text, color_h, color_s, color_l, energy_value, energy_level, "
    "ai_generated, reasoning, entry_date, created_at"
)
_PENDING_COLS = (
    "local_id, text, entry_date, color_h, color_s, color_l, energy_value, status, created_at, "
    "ai_generated, reasoning"
)

def _connect():
    return sqlite3.connect(DB_PATH, check_same_thread=False)

def init_db():
    folder = os.path.dirname(DB_PATH)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with _connect() as conn:
        conn.execute("""
        CREATE TABLE IF NOT EXISTS entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            text TEXT NOT NULL,
            color_h INTEGER NOT NULL,
            color_s INTEGER NOT NULL,
            color_l INTEGER NOT NULL,
            energy_value REAL NOT NULL,
            energy_level TEXT NOT NULL,
            ai_generated INTEGER NOT NULL DEFAULT 1,
            reasoning TEXT,
            entry_date TEXT NOT NULL,
            created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
        )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_entries_user_date ON entries(user_id, entry_date)")
        conn.execute("""
        CREATE TABLE IF NOT EXISTS pending_entries (
            local_id TEXT PRIMARY KEY,
            text TEXT NOT NULL,
            entry_date TEXT NOT NULL,
            color_h INTEGER,
            color_s INTEGER,
            color_l INTEGER,
            energy_value REAL,
            status TEXT NOT NULL DEFAULT 'pending',
            created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now')),
            ai_generated INTEGER NOT NULL DEFAULT 0,
            reasoning TEXT
        )
        """)
        conn.commit()

# ---------- Row mapping ----------
def _row_to_entry(row) -> MoodEntry:
    return MoodEntry(
        id=row[0],
        user_id=row[1],
        text=row[2],
        color=HSLColor(h=row[3], s=row[4], l=row[5]),
        energy_value=float(row[6]),
        energy_level=EnergyLevel(row[7]),
        ai_generated=bool(row[8]),
        reasoning=row[9],
        date=row[10],
        created_at=row[11],
    )

def _row_to_pending(row) -> PendingEntry:
    color = HSLColor(h=row[3], s=row[4], l=row[5]) if row[3] is not None else None
    return PendingEntry(
        local_id=row[0],
        text=row[1],
        date=row[2],
        color=color,
        energy=float(row[6]) if row[6] is not None else None,
        status=PendingStatus(row[7]),
        created_at=row[8],
        ai_generated=bool(row[9]),
        reasoning=row[10],
    )

def validate_draft(draft: EntryDraft) -> None:
    if not isinstance(draft.text, str) or not draft.text.strip():
        raise ApiError(ErrorCode.INVALID_INPUT, "entry text is empty")
    if not isinstance(draft.date, str) or not DATE_RE.match(draft.date):
        raise ApiError(ErrorCode.INVALID_INPUT, f"bad entry date {draft.date!r}")
    if not 0.0 <= float(draft.energy) <= 1.0:
        raise ApiError(ErrorCode.INVALID_INPUT, f"energy out of range: {draft.energy}")
    c = draft.color
    if not (0 <= c.h <= 360 and 0 <= c.s <= 100 and 0 <= c.l <= 100):
        raise ApiError(ErrorCode.INVALID_INPUT, f"colour out of range: {c}")

# ---------- Entries ----------
def insert_entry(user_id: str, draft: EntryDraft) -> MoodEntry:
    """Save a composed entry. The level is always derived from the stored energy."""
    validate_draft(draft)
    try:
        with _connect() as conn:
            cur = conn.execute(
                "INSERT INTO entries (user_id, text, color_h, color_s, color_l, energy_value, energy_level, "
                "ai_generated, reasoning, entry_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(user_id), draft.text.strip(),
                    draft.color.h, draft.color.s, draft.color.l,
                    float(draft.energy), energy_to_level(draft.energy).value,
                    int(bool(draft.ai_generated)), draft.reasoning, draft.date,
                ),
            )
            conn.commit()
            row = conn.execute(f"SELECT {_ENTRY_COLS} FROM entries WHERE id = ?", (cur.lastrowid,)).fetchone()
    except sqlite3.Error as e:
        logger.error("insert_entry failed for user %s: %s", user_id, e)
        raise ApiError(ErrorCode.UNKNOWN, str(e)) from e
    return _row_to_entry(row)

def load_entries_in_range(user_id: str, start: str, end: str) -> List[MoodEntry]:
    """Entries with start <= entry_date <= end, oldest first."""
    try:
        with _connect() as conn:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLS} FROM entries WHERE user_id = ? AND entry_date BETWEEN ? AND ? "
                "ORDER BY entry_date, created_at, id",
                (str(user_id), start, end),
            ).fetchall()
    except sqlite3.Error as e:
        logger.error("load_entries_in_range failed for user %s: %s", user_id, e)
        raise ApiError(ErrorCode.UNKNOWN, str(e)) from e
    return [_row_to_entry(r) for r in rows]

def load_entries_df(user_id: str) -> pd.DataFrame:
    with _connect() as conn:
        df = pd.read_sql_query(
            "SELECT id, entry_date, created_at, text, energy_value, energy_level, ai_generated, "
            "color_h, color_s, color_l FROM entries WHERE user_id = ? ORDER BY created_at DESC",
            conn, params=(str(user_id),),
        )
    if not df.empty:
        df["entry_date"] = pd.to_datetime(df["entry_date"])
        df["created_at"] = pd.to_datetime(df["created_at"])
        df["ai_generated"] = df["ai_generated"].astype(bool)
    return df

def list_user_ids() -> List[Dict[str, Any]]:
    with _connect() as conn:
        rows = conn.execute(
            "SELECT user_id, COUNT(*), MIN(entry_date), MAX(entry_date) FROM entries "
            "GROUP BY user_id ORDER BY MAX(created_at) DESC"
        ).fetchall()
    return [{"user_id": r[0], "entries": r[1], "first": r[2], "last": r[3]} for r in rows]

# ---------- Pending (offline) entries ----------
def insert_pending(local_id: str, text: str, entry_date: str,
                   color: Optional[HSLColor] = None, energy: Optional[float] = None,
                   ai_generated: bool = False, reasoning: Optional[str] = None) -> None:
    h, s, l = (color.h, color.s, color.l) if color else (None, None, None)
    with _connect() as conn:
        conn.execute(
            "INSERT INTO pending_entries (local_id, text, entry_date, color_h, color_s, color_l, energy_value, "
            "ai_generated, reasoning) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (local_id, text, entry_date, h, s, l, energy, int(bool(ai_generated)), reasoning),
        )
        conn.commit()

def load_pending(status: Optional[PendingStatus] = None) -> List[PendingEntry]:
    sql = f"SELECT {_PENDING_COLS} FROM pending_entries"
    params: tuple = ()
    if status is not None:
        sql += " WHERE status = ?"
        params = (PendingStatus(status).value,)
    with _connect() as conn:
        rows = conn.execute(sql + " ORDER BY created_at, rowid", params).fetchall()
    return [_row_to_pending(r) for r in rows]

def set_pending_status(local_id: str, status: PendingStatus) -> None:
    with _connect() as conn:
        conn.execute(
            "UPDATE pending_entries SET status = ? WHERE local_id = ?",
            (PendingStatus(status).value, local_id),
        )
        conn.commit()

def delete_pending(local_id: str) -> None:
    with _connect() as conn:
        conn.execute("DELETE FROM pending_entries WHERE local_id = ?", (local_id,))
        conn.commit()

# ---------- Danger zone ----------
def reset_user_data(user_id: str) -> None:
    with _connect() as conn:
        conn.execute("DELETE FROM entries WHERE user_id = ?", (str(user_id),))
        conn.commit()

def full_reset_db() -> None:
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
    init_db()
