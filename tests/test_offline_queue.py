"""Tests for the offline queue."""

from unittest.mock import MagicMock

import pytest
import requests

from moodmeter.errors import ApiError, ErrorCode, user_message
from moodmeter.models import EnergyLevel, PendingStatus
from moodmeter.services import offline_queue, storage
from moodmeter.services.composer import Composer
from moodmeter.services.llm import EnergyAnalysis
from moodmeter.services.spectrum import energy_to_color


def test_add_pending(db):
    """Queued entries start out pending."""
    local_id = offline_queue.add_pending("  offline thoughts ", "2026-03-14")
    queue = offline_queue.get_queue()
    assert [p.local_id for p in queue] == [local_id]
    assert queue[0].text == "offline thoughts"
    assert queue[0].status == PendingStatus.PENDING
    assert queue[0].color is None
    assert queue[0].energy is None


@pytest.mark.parametrize("text, day", [("", "2026-03-14"), ("hi", "yesterday")])
def test_add_pending_validates(db, text, day):
    """Blank text and bad dates are refused."""
    with pytest.raises(ApiError) as exc:
        offline_queue.add_pending(text, day)
    assert exc.value.code == ErrorCode.INVALID_INPUT


def test_status_transitions(db):
    """Syncing and failed entries drop out of get_pending."""
    a = offline_queue.add_pending("a", "2026-03-14")
    b = offline_queue.add_pending("b", "2026-03-14")
    offline_queue.mark_syncing(a)
    offline_queue.mark_failed(b)
    assert offline_queue.get_pending() == []
    assert offline_queue.retry_failed() == 1
    assert [p.local_id for p in offline_queue.get_pending()] == [b]
    offline_queue.remove_pending(b)
    assert [p.local_id for p in offline_queue.get_queue()] == [a]


def test_sync_analyses_and_saves(db):
    """Entries without energy are analysed at sync time."""
    local_id = offline_queue.add_pending("buzzing", "2026-03-14")
    analyzer = MagicMock(return_value=EnergyAnalysis(0.9, "Lots going on."))

    result = offline_queue.sync_pending("u1", analyzer=analyzer)

    assert result.synced == [local_id]
    assert result.failed == []
    analyzer.assert_called_once_with("buzzing")
    assert offline_queue.get_queue() == []
    saved = storage.load_entries_in_range("u1", "2026-03-14", "2026-03-14")
    assert len(saved) == 1
    assert saved[0].energy_level == EnergyLevel.HIGH
    assert saved[0].reasoning == "Lots going on."
    assert saved[0].ai_generated is True


def test_sync_keeps_chosen_energy(db):
    """An entry queued with an energy is saved without re-analysis."""
    offline_queue.add_pending("calm", "2026-03-14", color=energy_to_color(0.3), energy=0.3)
    analyzer = MagicMock()

    offline_queue.sync_pending("u1", analyzer=analyzer)

    analyzer.assert_not_called()
    saved = storage.load_entries_in_range("u1", "2026-03-14", "2026-03-14")
    assert saved[0].color == energy_to_color(0.3)
    assert saved[0].ai_generated is False


def test_sync_failure_marks_failed(db):
    """A failed analysis leaves the entry queued as failed."""
    local_id = offline_queue.add_pending("hello", "2026-03-14")
    analyzer = MagicMock(side_effect=ApiError(ErrorCode.AI_UNAVAILABLE))

    result = offline_queue.sync_pending("u1", analyzer=analyzer)

    assert result.synced == []
    assert result.failed == [(local_id, "Our AI is resting. Your entry is saved locally.")]
    assert offline_queue.get_queue()[0].status == PendingStatus.FAILED


def test_composer_defer_into_queue(db):
    """The composer can park a failed entry in the real queue."""
    composer = Composer(analyzer=MagicMock(side_effect=ApiError(ErrorCode.NETWORK)), text="later")
    composer.submit()
    local_id = composer.defer(offline_queue.add_pending, "2026-03-14")
    assert offline_queue.get_pending()[0].local_id == local_id
    assert composer.text == ""


def test_sync_unexpected_analyzer_error_marks_failed(db):
    """A raw transport error from the analyzer still leaves the entry retryable."""
    local_id = offline_queue.add_pending("hello", "2026-03-14")
    analyzer = MagicMock(side_effect=requests.exceptions.ChunkedEncodingError("stream cut"))

    result = offline_queue.sync_pending("u1", analyzer=analyzer)

    assert result.synced == []
    assert result.failed == [(local_id, user_message(ErrorCode.UNKNOWN))]
    assert offline_queue.get_queue()[0].status == PendingStatus.FAILED
    assert offline_queue.retry_failed() == 1
    assert offline_queue.get_pending()[0].text == "hello"


def test_sync_unexpected_persist_error_continues(db):
    """A crashing persist marks that entry failed and moves on to the next."""
    first = offline_queue.add_pending("one", "2026-03-14", color=energy_to_color(0.3), energy=0.3)
    second = offline_queue.add_pending("two", "2026-03-14", color=energy_to_color(0.7), energy=0.7)
    persist = MagicMock(side_effect=[RuntimeError("disk full"), "saved"])

    result = offline_queue.sync_pending("u1", analyzer=MagicMock(), persist=persist)

    assert result.synced == [second]
    assert [local_id for local_id, _ in result.failed] == [first]
    queue = offline_queue.get_queue()
    assert [(p.local_id, p.status) for p in queue] == [(first, PendingStatus.FAILED)]


def test_defer_after_analysis_syncs_with_provenance(db):
    """An analysed entry parked offline is saved with the AI's reasoning."""
    composer = Composer(analyzer=MagicMock(return_value=EnergyAnalysis(0.9, "Buzzing.")), text="so much")
    composer.submit()
    composer.defer(offline_queue.add_pending, "2026-03-14")

    queued = offline_queue.get_pending()[0]
    assert queued.ai_generated is True
    assert queued.reasoning == "Buzzing."

    analyzer = MagicMock()
    offline_queue.sync_pending("u1", analyzer=analyzer)

    analyzer.assert_not_called()
    saved = storage.load_entries_in_range("u1", "2026-03-14", "2026-03-14")[0]
    assert saved.energy_value == 0.9
    assert saved.ai_generated is True
    assert saved.reasoning == "Buzzing."


def test_defer_after_adjustment_syncs_as_user_choice(db):
    """A slider adjustment is still stored as the user's own pick after sync."""
    composer = Composer(analyzer=MagicMock(return_value=EnergyAnalysis(0.9, "Buzzing.")), text="so much")
    composer.submit()
    composer.adjust_energy(0.4)
    composer.defer(offline_queue.add_pending, "2026-03-14")

    offline_queue.sync_pending("u1", analyzer=MagicMock())

    saved = storage.load_entries_in_range("u1", "2026-03-14", "2026-03-14")[0]
    assert saved.energy_value == 0.4
    assert saved.color == energy_to_color(0.4)
    assert saved.ai_generated is False
