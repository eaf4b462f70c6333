"""Shared fixtures."""

import pytest

from moodmeter.services import storage


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Point storage at a fresh SQLite file for the test."""
    path = tmp_path / "moodmeter.db"
    monkeypatch.setattr(storage, "DB_PATH", str(path))
    storage.init_db()
    return path
