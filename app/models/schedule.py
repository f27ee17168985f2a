from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class WateringSchedule(Base):
    __tablename__ = "watering_schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    # SET NULL keeps the schedule around after its plant is deleted; the scheduler skips it
    plant_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("plants.id", ondelete="SET NULL"), index=True
    )

    start_time: Mapped[str] = mapped_column(String(5))  # HH:MM, 24h
    end_time: Mapped[str] = mapped_column(String(5))
    days_of_week: Mapped[list[int]] = mapped_column(JSON, default=lambda: [0, 1, 2, 3, 4, 5, 6])  # 0 = Sunday
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="watering_schedules")
    plant: Mapped[Optional["Plant"]] = relationship(back_populates="watering_schedules")


class WindowFiring(Base):
    """Marks a schedule window as already watered on a given local date (strict firing mode)."""

    __tablename__ = "window_firings"
    __table_args__ = (UniqueConstraint("schedule_id", "window_date", name="uq_window_firings_schedule_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("watering_schedules.id", ondelete="CASCADE"))
    window_date: Mapped[date] = mapped_column(Date)
    fired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
