from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

PlantType = Literal["tomato", "lettuce", "basil", "pepper", "cucumber", "strawberry", "herbs", "other"]


class PlantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    plant_type: PlantType
    watering_interval_hours: int = Field(24, ge=1, le=168)
    image_url: Optional[str] = None


class PlantUpdate(BaseModel):
    """User-editable fields. Watering state is owned by the watering executor."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    plant_type: Optional[PlantType] = None
    watering_interval_hours: Optional[int] = Field(None, ge=1, le=168)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    temperature: Optional[int] = Field(None, ge=0, le=50)
    humidity: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("name", "plant_type", "watering_interval_hours", "is_active", "temperature", "humidity")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; only image_url can be cleared
        if v is None:
            raise ValueError("may not be null")
        return v


class PlantRead(BaseModel):
    id: int
    user_id: int
    name: str
    plant_type: str
    image_url: Optional[str] = None
    is_active: bool
    last_watered: datetime
    watering_interval_hours: int
    soil_moisture: int
    temperature: int
    humidity: int
    needs_water: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WateringEventRead(BaseModel):
    id: int
    schedule_id: Optional[int] = None
    source: str
    timestamp: datetime
    duration_seconds: int
    moisture_before: int
    moisture_after: int

    model_config = {"from_attributes": True}


class PlantStats(BaseModel):
    total_waterings: int
    average_moisture: float
    last_watered: datetime
    watering_history: list[WateringEventRead]


class WateringWindowStatus(BaseModel):
    plant_id: int
    in_window: bool
    schedule_ids: list[int]
