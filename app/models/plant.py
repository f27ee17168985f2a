from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

PLANT_TYPES = ("tomato", "lettuce", "basil", "pepper", "cucumber", "strawberry", "herbs", "other")


class Plant(Base):
    __tablename__ = "plants"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200))
    plant_type: Mapped[str] = mapped_column(Enum(*PLANT_TYPES, name="plant_type_enum"))
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Watering policy and state; last_watered and soil_moisture are owned by the watering executor
    last_watered: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    watering_interval_hours: Mapped[int] = mapped_column(Integer, default=24)
    soil_moisture: Mapped[int] = mapped_column(Integer, default=50)  # percent

    # Environment (informational)
    temperature: Mapped[int] = mapped_column(Integer, default=22)  # celsius
    humidity: Mapped[int] = mapped_column(Integer, default=60)  # percent

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="plants")
    watering_history: Mapped[list["WateringEvent"]] = relationship(
        back_populates="plant", cascade="all, delete-orphan", order_by="WateringEvent.id"
    )
    watering_schedules: Mapped[list["WateringSchedule"]] = relationship(back_populates="plant")


class WateringEvent(Base):
    """One entry of a plant's append-only watering history. Row id order is chronological order."""

    __tablename__ = "watering_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    plant_id: Mapped[int] = mapped_column(ForeignKey("plants.id", ondelete="CASCADE"), index=True)
    schedule_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("watering_schedules.id", ondelete="SET NULL"), index=True
    )
    source: Mapped[str] = mapped_column(Enum("manual", "schedule", name="watering_source_enum"))

    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, default=0)
    moisture_before: Mapped[int] = mapped_column(Integer)
    moisture_after: Mapped[int] = mapped_column(Integer)

    # Relationships
    plant: Mapped["Plant"] = relationship(back_populates="watering_history")
