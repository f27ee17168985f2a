"""
Watering scheduler: one evaluation cycle per tick.

A cycle:
  1. overdue detection over all active plants → plant-needs-water events
  2. window evaluation over all active schedules → scheduled waterings
     → schedule-watering-completed events

Overdue detection never waters anything; the two mechanisms are independent.
Cycles never overlap: a tick that arrives while a cycle is running is skipped,
a manual trigger waits its turn. Failures are isolated per plant / schedule.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import InvalidScheduleDefinition, TransientStoreError
from app.services.events import (
    PLANT_NEEDS_WATER,
    SCHEDULE_WATERING_COMPLETED,
    EventNotifier,
    NullEventNotifier,
)
from app.services.stores import PlantStore, ScheduleStore
from app.services.watering import WateringExecutor
from app.services.watering_windows import (
    cooldown_elapsed,
    ensure_aware,
    find_overdue,
    local_time,
    window_date,
    window_for,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CycleReport:
    started_at: datetime
    skipped: bool = False
    overdue_plant_ids: list[int] = field(default_factory=list)
    watered: list[tuple[int, int]] = field(default_factory=list)  # (schedule_id, plant_id)
    cooling_down_schedule_ids: list[int] = field(default_factory=list)
    missing_plant_schedule_ids: list[int] = field(default_factory=list)
    invalid_schedule_ids: list[int] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    events_published: int = 0

    def as_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "skipped": self.skipped,
            "overdue_plant_ids": self.overdue_plant_ids,
            "watered": [{"schedule_id": s, "plant_id": p} for s, p in self.watered],
            "cooling_down_schedule_ids": self.cooling_down_schedule_ids,
            "missing_plant_schedule_ids": self.missing_plant_schedule_ids,
            "invalid_schedule_ids": self.invalid_schedule_ids,
            "errors": self.errors,
            "events_published": self.events_published,
        }


class WateringScheduler:
    def __init__(
        self,
        plants: PlantStore,
        schedules: ScheduleStore,
        notifier: Optional[EventNotifier] = None,
        executor: Optional[WateringExecutor] = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
        tz: Optional[tzinfo] = None,
        strict_windows: Optional[bool] = None,
        cycle_lock: Optional[asyncio.Lock] = None,
    ):
        self.plants = plants
        self.schedules = schedules
        self.notifier = notifier or NullEventNotifier()
        self.executor = executor or WateringExecutor(plants)
        self.clock = clock
        self.tz = tz or ZoneInfo(settings.SCHEDULE_TIMEZONE)
        self.strict_windows = settings.STRICT_WINDOW_FIRING if strict_windows is None else strict_windows
        self._cycle_lock = cycle_lock or asyncio.Lock()

    @property
    def cooldown(self) -> timedelta:
        return self.executor.cooldown

    @property
    def running(self) -> bool:
        return self._cycle_lock.locked()

    async def run_cycle(self, now: Optional[datetime] = None, *, wait: bool = False) -> CycleReport:
        """
        Run one evaluation cycle.

        wait=False (periodic ticks): skip if a cycle is already in flight.
        wait=True (manual trigger): queue behind the in-flight cycle.
        Raises TransientStoreError only when the stores cannot be listed at all.
        """
        if self._cycle_lock.locked() and not wait:
            report = CycleReport(started_at=ensure_aware(now or self.clock()), skipped=True)
            logger.warning("watering_cycle: previous cycle still running, skipping tick")
            return report

        async with self._cycle_lock:
            now = ensure_aware(now or self.clock())
            report = CycleReport(started_at=now)
            events: dict[tuple[str, int], tuple[int, dict]] = {}

            await self._detect_overdue(now, report, events)
            await self._evaluate_windows(now, report, events)

            for (event, _entity_id), (user_id, payload) in events.items():
                await self.notifier.publish(user_id, event, payload)
                report.events_published += 1

            logger.info(
                "watering_cycle: complete: %d overdue, %d watered, %d cooling down, %d missing, %d invalid, %d errors",
                len(report.overdue_plant_ids), len(report.watered), len(report.cooling_down_schedule_ids),
                len(report.missing_plant_schedule_ids), len(report.invalid_schedule_ids), len(report.errors),
            )
            return report

    async def trigger(self) -> CycleReport:
        """Force one cycle now, waiting for any in-flight cycle to finish first."""
        return await self.run_cycle(wait=True)

    async def _detect_overdue(self, now: datetime, report: CycleReport, events: dict) -> None:
        plants = await self.plants.list_active()
        for alert in find_overdue(plants, now):
            plant = alert.plant
            report.overdue_plant_ids.append(plant.id)
            events[(PLANT_NEEDS_WATER, plant.id)] = (
                plant.user_id,
                {
                    "plant_id": plant.id,
                    "plant_name": plant.name,
                    "plant_type": plant.plant_type,
                    "hours_since_watering": int(alert.hours_since_watering),
                },
            )

    async def _evaluate_windows(self, now: datetime, report: CycleReport, events: dict) -> None:
        schedules = await self.schedules.list_active()
        local_now = local_time(now, self.tz)

        for schedule in schedules:
            try:
                await self._evaluate_schedule(schedule, now, local_now, report, events)
            except TransientStoreError as exc:
                logger.warning("watering_cycle: store error on schedule %d, retrying next cycle: %s", schedule.id, exc)
                report.errors.append(f"schedule {schedule.id}: {exc}")
            except Exception as exc:
                logger.exception("watering_cycle: failed for schedule %d: %s", schedule.id, exc)
                report.errors.append(f"schedule {schedule.id}: {exc}")

    async def _evaluate_schedule(
        self,
        schedule: Any,
        now: datetime,
        local_now: datetime,
        report: CycleReport,
        events: dict,
    ) -> None:
        plant = schedule.plant
        if plant is None or not plant.is_active:
            logger.debug("watering_cycle: schedule %d has no active plant, skipping", schedule.id)
            report.missing_plant_schedule_ids.append(schedule.id)
            return

        try:
            window = window_for(schedule)
        except InvalidScheduleDefinition as exc:
            logger.warning("watering_cycle: skipping invalid schedule %d: %s", schedule.id, exc.reason)
            report.invalid_schedule_ids.append(schedule.id)
            return

        if not window.contains(local_now):
            return

        if not cooldown_elapsed(plant, now, self.cooldown):
            report.cooling_down_schedule_ids.append(schedule.id)
            return

        fired_on = window_date(now, self.tz) if self.strict_windows else None
        result = await self.executor.water_on_schedule(schedule, window, now, fired_on=fired_on)
        if result is None:
            report.cooling_down_schedule_ids.append(schedule.id)
            return

        report.watered.append((schedule.id, result.plant.id))
        events[(SCHEDULE_WATERING_COMPLETED, schedule.id)] = (
            schedule.user_id,
            {
                "schedule_id": schedule.id,
                "plant_id": result.plant.id,
                "plant_name": result.plant.name,
                "duration": result.entry.duration_seconds,
            },
        )

    async def windows_open_for_plant(self, plant_id: int, now: Optional[datetime] = None) -> list[int]:
        """Ids of the plant's active schedules whose window contains `now`. Read-only.

        Empty for a missing or inactive plant, which the cycle never waters.
        """
        now = ensure_aware(now or self.clock())
        local_now = local_time(now, self.tz)
        open_ids: list[int] = []
        for schedule in await self.schedules.list_active_for_plant(plant_id):
            if schedule.plant is None or not schedule.plant.is_active:
                continue
            try:
                window = window_for(schedule)
            except InvalidScheduleDefinition:
                continue
            if window.contains(local_now):
                open_ids.append(schedule.id)
        return open_ids

    async def is_plant_in_window(self, plant_id: int, now: Optional[datetime] = None) -> bool:
        return bool(await self.windows_open_for_plant(plant_id, now))


async def tick_forever(scheduler: WateringScheduler, interval_seconds: Optional[float] = None) -> None:
    """
    Fixed-interval driver for running without the ARQ worker.

    Ticks are aligned to the start time; a cycle that overruns its slot makes
    the driver skip the ticks it missed rather than run them back to back.
    """
    interval = interval_seconds or settings.SCHEDULER_TICK_SECONDS
    loop = asyncio.get_running_loop()
    next_tick = loop.time()
    while True:
        try:
            await scheduler.run_cycle()
        except TransientStoreError as exc:
            logger.error("watering_cycle: store unreachable, cycle aborted: %s", exc)
        except Exception:
            logger.exception("watering_cycle: unexpected error")

        next_tick += interval
        now = loop.time()
        if now > next_tick:
            missed = int((now - next_tick) // interval) + 1
            logger.warning("watering_cycle: cycle overran, skipping %d tick(s)", missed)
            next_tick += missed * interval
        await asyncio.sleep(next_tick - now)
