"""
Pure watering-window and overdue evaluation.

Nothing here touches storage. Plants and schedules are read through their
attributes only, so ORM rows and detached test objects work the same way.

Conventions:
- day-of-week indices run 0–6 with 0 = Sunday
- clock times are "HH:MM" strings on a 24-hour clock
- a window is half-open: start <= now < end, on one calendar day (no overnight spans)
- all elapsed-time maths is done on aware datetimes; naive values are treated as UTC
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Iterable, Optional

from app.core.errors import InvalidScheduleDefinition

logger = logging.getLogger(__name__)

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


# ── Time helpers ──────────────────────────────────────────────────────────────

def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite hands them back without tzinfo)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def elapsed_since(last: datetime, now: datetime) -> timedelta:
    """Time since `last`, clamped at zero when `last` lies in the future (clock skew, bad input)."""
    delta = ensure_aware(now) - ensure_aware(last)
    if delta < timedelta(0):
        logger.debug("elapsed_since: last_watered %s is after now %s, clamping to zero", last, now)
        return timedelta(0)
    return delta


def hours_since(last: datetime, now: datetime) -> float:
    return elapsed_since(last, now).total_seconds() / 3600


def weekday_index(dt: datetime) -> int:
    """0 = Sunday … 6 = Saturday."""
    return (dt.weekday() + 1) % 7


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def parse_clock_time(value: Any, schedule_id: Optional[int] = None) -> int:
    """Parse "HH:MM" into minutes after midnight."""
    if not isinstance(value, str):
        raise InvalidScheduleDefinition(schedule_id, f"clock time must be a string, got {value!r}")
    match = _CLOCK_RE.match(value.strip())
    if not match:
        raise InvalidScheduleDefinition(schedule_id, f"malformed clock time {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidScheduleDefinition(schedule_id, f"clock time out of range {value!r}")
    return hour * 60 + minute


def normalize_days(days: Any, schedule_id: Optional[int] = None) -> frozenset[int]:
    """Validate and de-duplicate a day-of-week collection."""
    if days is None:
        raise InvalidScheduleDefinition(schedule_id, "no days of week")
    normalized = set()
    for day in days:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise InvalidScheduleDefinition(schedule_id, f"invalid day of week {day!r}")
        normalized.add(day)
    if not normalized:
        raise InvalidScheduleDefinition(schedule_id, "no days of week")
    return frozenset(normalized)


# ── Windows ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WateringWindow:
    start_minutes: int
    end_minutes: int
    days: frozenset[int]

    @property
    def duration_seconds(self) -> int:
        return (self.end_minutes - self.start_minutes) * 60

    def contains(self, local_now: datetime) -> bool:
        """True iff today is a scheduled day and start <= now < end. `local_now` is already in the schedule's zone."""
        if weekday_index(local_now) not in self.days:
            return False
        return self.start_minutes <= minute_of_day(local_now) < self.end_minutes


def window_for(schedule: Any) -> WateringWindow:
    """Build the window for a schedule. Raises InvalidScheduleDefinition on any malformed field."""
    schedule_id = getattr(schedule, "id", None)
    start = parse_clock_time(schedule.start_time, schedule_id)
    end = parse_clock_time(schedule.end_time, schedule_id)
    if start >= end:
        raise InvalidScheduleDefinition(
            schedule_id, f"start {schedule.start_time} must be before end {schedule.end_time}"
        )
    return WateringWindow(start, end, normalize_days(schedule.days_of_week, schedule_id))


def local_time(now: datetime, tz: tzinfo) -> datetime:
    return ensure_aware(now).astimezone(tz)


def window_date(now: datetime, tz: tzinfo) -> date:
    """Calendar date of the window instance `now` falls in, in the schedule's zone."""
    return local_time(now, tz).date()


def cooldown_elapsed(plant: Any, now: datetime, cooldown: timedelta) -> bool:
    return elapsed_since(plant.last_watered, now) >= cooldown


# ── Overdue detection ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OverdueAlert:
    plant: Any
    hours_since_watering: float


def find_overdue(plants: Iterable[Any], now: datetime) -> list[OverdueAlert]:
    """Active plants whose time since last watering meets or exceeds their interval."""
    alerts: list[OverdueAlert] = []
    for plant in plants:
        if not plant.is_active:
            continue
        try:
            hours = hours_since(plant.last_watered, now)
            overdue = hours >= plant.watering_interval_hours
        except (TypeError, AttributeError) as exc:
            logger.warning("find_overdue: skipping plant %s with unusable watering state: %s", plant.id, exc)
            continue
        if overdue:
            alerts.append(OverdueAlert(plant=plant, hours_since_watering=hours))
    return alerts


def clamp_moisture(value: int) -> int:
    return max(0, min(100, value))
