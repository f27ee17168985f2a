"""
Watering error taxonomy and the HTTP mapping for errors that escape to the API.

Inside the scheduler every one of these is isolated to the plant or schedule
that raised it; the cycle logs it and moves on.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class WateringError(Exception):
    """Base class for scheduler and watering failures."""


class TransientStoreError(WateringError):
    """A read or write against the plant/schedule store failed. Retried next cycle."""


class MissingReference(WateringError):
    """A plant was deleted, deactivated, or never existed."""

    def __init__(self, plant_id: int | None, reason: str = "not found"):
        self.plant_id = plant_id
        self.reason = reason
        super().__init__(f"plant {plant_id}: {reason}")


class InvalidScheduleDefinition(WateringError):
    """Malformed clock times, an empty day set, or a window that ends before it starts."""

    def __init__(self, schedule_id: int | None, reason: str):
        self.schedule_id = schedule_id
        self.reason = reason
        super().__init__(f"schedule {schedule_id}: {reason}")


STORE_UNAVAILABLE_MESSAGE = "Plant storage is temporarily unavailable. Please try again later."


def register_exception_handlers(app: FastAPI) -> None:
    """Map watering errors to HTTP responses. HTTPException and validation handling stay default."""

    @app.exception_handler(TransientStoreError)
    async def transient_store_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": STORE_UNAVAILABLE_MESSAGE})

    @app.exception_handler(MissingReference)
    async def missing_reference_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": "Plant not found"})
