# moodmeter/services/offline_queue.py
"""
Entries written while the AI or the backend was unreachable.

They wait in the local `pending_entries` table and are pushed through
analysis + persistence by `sync_pending` once things are reachable again.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from moodmeter.errors import ApiError, ErrorCode, user_message
from moodmeter.models import EntryDraft, HSLColor, MoodEntry, PendingEntry, PendingStatus
from moodmeter.services import storage
from moodmeter.services.calendar import DATE_RE
from moodmeter.services.llm import EnergyAnalysis, analyze_energy
from moodmeter.services.spectrum import energy_to_color

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    synced: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (local_id, user message)


def add_pending(text: str, entry_date: str, color: Optional[HSLColor] = None,
                energy: Optional[float] = None, ai_generated: bool = False,
                reasoning: Optional[str] = None) -> str:
    """
    Queue an entry. `energy` (with its colour, provenance and reasoning) is set
    when the text was already analysed; otherwise analysis happens at sync time.
    """
    if not isinstance(text, str) or not text.strip():
        raise ApiError(ErrorCode.INVALID_INPUT, "nothing to queue")
    if not isinstance(entry_date, str) or not DATE_RE.match(entry_date):
        raise ApiError(ErrorCode.INVALID_INPUT, f"bad entry date {entry_date!r}")
    local_id = uuid.uuid4().hex
    storage.insert_pending(
        local_id, text.strip(), entry_date, color=color, energy=energy,
        ai_generated=ai_generated, reasoning=reasoning,
    )
    logger.info("queued entry %s for %s", local_id, entry_date)
    return local_id


def get_queue() -> List[PendingEntry]:
    return storage.load_pending()


def get_pending() -> List[PendingEntry]:
    return storage.load_pending(PendingStatus.PENDING)


def mark_syncing(local_id: str) -> None:
    storage.set_pending_status(local_id, PendingStatus.SYNCING)


def mark_failed(local_id: str) -> None:
    storage.set_pending_status(local_id, PendingStatus.FAILED)


def retry_failed() -> int:
    """Put failed entries back in line. Returns how many were requeued."""
    failed = storage.load_pending(PendingStatus.FAILED)
    for p in failed:
        storage.set_pending_status(p.local_id, PendingStatus.PENDING)
    return len(failed)


def remove_pending(local_id: str) -> None:
    storage.delete_pending(local_id)


def _to_draft(p: PendingEntry, analyzer: Callable[[str], EnergyAnalysis]) -> EntryDraft:
    if p.energy is not None:
        # user already settled on a colour before going offline
        return EntryDraft(
            text=p.text, date=p.date,
            color=p.color or energy_to_color(p.energy),
            energy=p.energy, ai_generated=p.ai_generated, reasoning=p.reasoning,
        )
    analysis = analyzer(p.text)
    return EntryDraft(
        text=p.text, date=p.date, color=analysis.color, energy=analysis.energy,
        ai_generated=True, reasoning=analysis.reasoning,
    )


def sync_pending(
    user_id: str,
    analyzer: Callable[[str], EnergyAnalysis] = analyze_energy,
    persist: Optional[Callable[[str, EntryDraft], MoodEntry]] = None,
) -> SyncResult:
    persist = persist or storage.insert_entry
    result = SyncResult()
    for p in get_pending():
        mark_syncing(p.local_id)
        try:
            persist(user_id, _to_draft(p, analyzer))
        except ApiError as e:
            logger.warning("sync of %s failed: %s", p.local_id, e.code.value)
            mark_failed(p.local_id)
            result.failed.append((p.local_id, e.message))
            continue
        except Exception:
            # never leave an entry stuck in SYNCING
            logger.exception("sync of %s failed unexpectedly", p.local_id)
            mark_failed(p.local_id)
            result.failed.append((p.local_id, user_message(ErrorCode.UNKNOWN)))
            continue
        remove_pending(p.local_id)
        result.synced.append(p.local_id)
    if result.synced or result.failed:
        logger.info("offline sync: %d synced, %d failed", len(result.synced), len(result.failed))
    return result
