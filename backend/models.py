"""
Pydantic models used across the backend.

`ReadingIn` is the request body of `POST /readings` and keeps the
camelCase names the dashboard form sends. `ReadingOut` is a stored row
(with `id` and `created_at`) and is what the repository returns and the
routes serialize.

Guidelines:
- Input models only normalize shape. Business rules (at least one value,
  no future dates, value bounds) live in `ReadingService`.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional
from datetime import date, datetime


class ReadingIn(BaseModel):
    """Input shape for a reading submission.

    Fields:
    - `preReading`: mg/dL before eating, optional.
    - `postReading`: mg/dL after eating, optional.
    - `date`: `YYYY-MM-DD`; the service defaults it to today when omitted.

    Blank strings and zero count as "not supplied", the same way an
    empty form field does.
    """

    model_config = ConfigDict(populate_by_name=True)

    pre_reading: Optional[float] = Field(default=None, alias="preReading")
    post_reading: Optional[float] = Field(default=None, alias="postReading")
    reading_date: Optional[date] = Field(default=None, alias="date")

    @field_validator("pre_reading", "post_reading", mode="before")
    @classmethod
    def blank_reading_is_none(cls, v: Any) -> Any:
        # bool is an int subclass; `true` must not become 1 mg/dL
        if isinstance(v, bool):
            raise ValueError("reading must be a number")
        if isinstance(v, str):
            v = v.strip()
            if v == "":
                return None
            try:
                v = float(v)
            except ValueError:
                raise ValueError("reading must be a number") from None
        if v is None or v == 0:
            return None
        return v

    @field_validator("reading_date", mode="before")
    @classmethod
    def blank_date_is_none(cls, v: Any) -> Any:
        if v == "":
            return None
        return v


class ReadingOut(BaseModel):
    """A stored reading: one user, one calendar date."""

    id: str
    user_id: str
    reading_date: date
    pre_reading: Optional[float] = None
    post_reading: Optional[float] = None
    created_at: datetime

    def public(self) -> dict:
        """JSON-ready dict for API responses (owner id omitted)."""

        return self.model_dump(mode="json", exclude={"user_id"})
