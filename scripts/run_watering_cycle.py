#!/usr/bin/env python3
"""
Run the watering scheduler without the ARQ worker.

Usage (inside the API container):
    python scripts/run_watering_cycle.py          # one cycle, recorded as a PipelineRun
    python scripts/run_watering_cycle.py --loop   # tick every SCHEDULER_TICK_SECONDS
"""
import argparse
import asyncio
import json
import logging
import sys

from app.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s  %(levelname)-8s  %(name)s: %(message)s",
    stream=sys.stdout,
)

import redis.asyncio as aioredis

from app.services.scheduler import tick_forever
from app.tasks.watering import build_scheduler, run_recorded_cycle


async def main(loop: bool) -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    scheduler = build_scheduler(redis=redis)
    try:
        if loop:
            print(f"Watering scheduler ticking every {settings.SCHEDULER_TICK_SECONDS}s (Ctrl+C to stop)\n")
            await tick_forever(scheduler)
        else:
            report = await run_recorded_cycle(scheduler, wait=True)
            print(json.dumps(report.as_dict(), indent=2))
    finally:
        await redis.aclose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the watering scheduler")
    parser.add_argument("--loop", action="store_true", help="keep ticking instead of running a single cycle")
    args = parser.parse_args()
    asyncio.run(main(args.loop))
