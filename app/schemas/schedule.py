from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from app.core.errors import InvalidScheduleDefinition
from app.services.watering_windows import normalize_days, parse_clock_time

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def _clock(value: str) -> str:
    try:
        minutes = parse_clock_time(value)
    except InvalidScheduleDefinition as exc:
        raise ValueError(exc.reason) from exc
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _days(value: list[int]) -> list[int]:
    try:
        return sorted(normalize_days(value))
    except InvalidScheduleDefinition as exc:
        raise ValueError(exc.reason) from exc


class ScheduleCreate(BaseModel):
    plant_id: int
    start_time: str
    end_time: str
    days_of_week: list[int] = ALL_DAYS

    @field_validator("start_time", "end_time")
    @classmethod
    def check_clock(cls, v: str) -> str:
        return _clock(v)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, v: list[int]) -> list[int]:
        return _days(v)

    @model_validator(mode="after")
    def check_window(self) -> "ScheduleCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time (overnight windows are not supported)")
        return self


class ScheduleUpdate(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_of_week: Optional[list[int]] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_clock(cls, v: Optional[str]) -> Optional[str]:
        return _clock(v) if v is not None else v

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        return _days(v) if v is not None else v


class SchedulePlantSummary(BaseModel):
    id: int
    name: str
    plant_type: str
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class ScheduleRead(BaseModel):
    id: int
    user_id: int
    plant_id: Optional[int]
    start_time: str
    end_time: str
    days_of_week: list[int]
    is_active: bool
    plant: Optional[SchedulePlantSummary] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
