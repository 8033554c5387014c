"""Shared fixtures: in-memory repository and a controllable clock."""

import sqlite3
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from taskdefender.data.database import SCHEMA_SQL
from taskdefender.data.repository import Repository

# A Wednesday
START = datetime(2024, 3, 13, 10, 0, 0)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class Ids:
    """Deterministic id factory: id-1, id-2, ..."""

    def __init__(self) -> None:
        self.n = 0

    def __call__(self) -> str:
        self.n += 1
        return f"id-{self.n}"


@pytest.fixture
def conn():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    return conn


@pytest.fixture
def repo(conn):
    return Repository(conn)


@pytest.fixture
def broken_repo():
    """Repository whose connection is already closed: every call fails."""
    conn = sqlite3.connect(":memory:")
    conn.close()
    return Repository(conn)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ids():
    return Ids()
