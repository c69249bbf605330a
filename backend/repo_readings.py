"""
Repository: SQL operations for `readings`.

This file contains only DB interaction code. It maps service arguments
to SQL parameters and converts rows to `ReadingOut`. Keep business rules
out of this module.

Important notes:
- The upsert is one `INSERT ... ON CONFLICT` statement keyed on the
  `readings_user_date_key` unique constraint, so two first submissions
  for the same (user, date) cannot produce two rows.
- `COALESCE(EXCLUDED.x, readings.x)` keeps a stored value when the new
  submission leaves that field null.
- NUMERIC columns come back as `Decimal`; they are converted to float.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from db import Database
from models import ReadingOut

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS readings (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    reading_date DATE NOT NULL,
    pre_reading NUMERIC(6, 2),
    post_reading NUMERIC(6, 2),
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    CONSTRAINT readings_user_date_key UNIQUE (user_id, reading_date),
    CONSTRAINT readings_has_value CHECK (pre_reading IS NOT NULL OR post_reading IS NOT NULL),
    CONSTRAINT readings_pre_positive CHECK (pre_reading > 0),
    CONSTRAINT readings_post_positive CHECK (post_reading > 0)
);

CREATE INDEX IF NOT EXISTS idx_readings_user_date ON readings (user_id, reading_date);
"""

READING_COLUMNS = "id, user_id, reading_date, pre_reading, post_reading, created_at"

UPSERT_SQL = f"""
INSERT INTO readings (user_id, reading_date, pre_reading, post_reading)
VALUES (%s, %s, %s, %s)
ON CONFLICT (user_id, reading_date) DO UPDATE SET
    pre_reading = COALESCE(EXCLUDED.pre_reading, readings.pre_reading),
    post_reading = COALESCE(EXCLUDED.post_reading, readings.post_reading)
RETURNING {READING_COLUMNS}
"""

FETCH_SINCE_SQL = f"""
SELECT {READING_COLUMNS}
FROM readings
WHERE user_id = %s AND reading_date >= %s
ORDER BY reading_date ASC
"""


def _as_float(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else float(value)


def row_to_reading(row: Dict[str, Any]) -> ReadingOut:
    return ReadingOut(
        id=str(row["id"]),
        user_id=row["user_id"],
        reading_date=row["reading_date"],
        pre_reading=_as_float(row["pre_reading"]),
        post_reading=_as_float(row["post_reading"]),
        created_at=row["created_at"],
    )


class ReadingRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map arguments -> SQL parameters
    - Execute statements through the `Database` gateway
    - Return `ReadingOut` objects
    """

    def __init__(self, db: Database):
        self.db = db

    def upsert(
        self,
        user_id: str,
        reading_date: date,
        pre_reading: Optional[float],
        post_reading: Optional[float],
    ) -> ReadingOut:
        """Insert the day's row or merge the supplied fields into it."""

        rows = self.db.execute(UPSERT_SQL, (user_id, reading_date, pre_reading, post_reading))
        return row_to_reading(rows[0])

    def fetch_since(self, user_id: str, since: date) -> List[ReadingOut]:
        """Readings for `user_id` on or after `since`, oldest first."""

        rows = self.db.execute(FETCH_SINCE_SQL, (user_id, since))
        return [row_to_reading(r) for r in rows]

    def create_schema(self) -> None:
        """Apply the idempotent DDL for `readings`."""

        self.db.execute(SCHEMA_SQL)

    def ping(self) -> None:
        self.db.ping()
