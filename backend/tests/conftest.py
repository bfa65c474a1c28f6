"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths, test settings, and the in-memory
    ledger store patched over wedding_wager.database.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

_THIS_FILE = Path(__file__).resolve()
_TESTS_DIR = _THIS_FILE.parent
_BACKEND_DIR = _THIS_FILE.parents[1]

for candidate in (str(_BACKEND_DIR), str(_TESTS_DIR)):
    if candidate not in sys.path:
        sys.path.insert(0, candidate)

# Settings are read at import time.
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-0123456789abcdef0123456789")
os.environ.setdefault("SEED_INITIAL_BETS", "false")

from fake_mongo import FakeClient  # noqa: E402


@pytest.fixture
def fake_client(monkeypatch):
    import wedding_wager.database as _db

    client = FakeClient()
    monkeypatch.setattr(_db, "client", client)
    monkeypatch.setattr(_db, "db", client.db)
    return client


@pytest.fixture
def fake_db(fake_client):
    return fake_client.db
