"""Pytest configuration and shared fixtures.

No live database is needed: `FakeReadingRepo` keeps rows in memory and
merges them the same way the `INSERT ... ON CONFLICT` statement does.
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from auth import create_session_token
from main import app, get_service
from models import ReadingOut
from service_readings import ReadingService

TODAY = date(2024, 3, 1)


class FakeReadingRepo:
    """In-memory stand-in for `ReadingRepo`."""

    def __init__(self):
        self.rows: Dict[Tuple[str, date], ReadingOut] = {}
        self.upsert_calls = 0
        self._next_id = 1

    def upsert(
        self,
        user_id: str,
        reading_date: date,
        pre_reading: Optional[float],
        post_reading: Optional[float],
    ) -> ReadingOut:
        self.upsert_calls += 1
        key = (user_id, reading_date)
        existing = self.rows.get(key)
        if existing is None:
            reading = ReadingOut(
                id=str(self._next_id),
                user_id=user_id,
                reading_date=reading_date,
                pre_reading=pre_reading,
                post_reading=post_reading,
                created_at=datetime.now(timezone.utc),
            )
            self._next_id += 1
        else:
            reading = existing.model_copy(
                update={
                    "pre_reading": existing.pre_reading if pre_reading is None else pre_reading,
                    "post_reading": existing.post_reading if post_reading is None else post_reading,
                }
            )
        self.rows[key] = reading
        return reading

    def fetch_since(self, user_id: str, since: date) -> List[ReadingOut]:
        matching = [r for (owner, day), r in self.rows.items() if owner == user_id and day >= since]
        return sorted(matching, key=lambda r: r.reading_date)

    def ping(self) -> None:
        pass


@pytest.fixture
def repo() -> FakeReadingRepo:
    return FakeReadingRepo()


@pytest.fixture
def service(repo) -> ReadingService:
    return ReadingService(repo, today=lambda: TODAY)


@pytest.fixture
def client(service):
    """HTTP client wired to the in-memory service.

    The lifespan (which opens the real pool) is not run because the
    client is not used as a context manager.
    """
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_session_token('alice')}"}
