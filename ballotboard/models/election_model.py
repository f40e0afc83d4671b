from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ballotboard.config import DEFAULT_POSITIONS


class ElectionStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _blank_to_none(value):
    # the admin form sends "" for an unset date
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start and end and _aware(end) < _aware(start):
        raise ValueError("endDate must not be before startDate")


class Election(BaseModel):
    title: str = Field(..., min_length=1, examples=["Student Council 2026"])
    description: Optional[str] = Field(default="", examples=["Annual council election"])
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: ElectionStatus = ElectionStatus.UPCOMING
    positions: List[str] = Field(default_factory=lambda: list(DEFAULT_POSITIONS))

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def blank_dates(cls, value):
        return _blank_to_none(value)

    @model_validator(mode="after")
    def check_dates(self):
        _check_window(self.startDate, self.endDate)
        return self


class ElectionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    # Any status is accepted; no transition rules apply
    status: Optional[ElectionStatus] = None
    positions: Optional[List[str]] = None

    @field_validator("startDate", "endDate", mode="before")
    @classmethod
    def blank_dates(cls, value):
        return _blank_to_none(value)

    @field_validator("title", "status", "positions", mode="before")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def description_default(cls, value):
        return "" if value is None else value

    @model_validator(mode="after")
    def check_dates(self):
        _check_window(self.startDate, self.endDate)
        return self
