from app.models.user import User
from app.models.plant import Plant, WateringEvent
from app.models.schedule import WateringSchedule, WindowFiring
from app.models.logs import PipelineRun

__all__ = [
    "User",
    "Plant",
    "WateringEvent",
    "WateringSchedule",
    "WindowFiring",
    "PipelineRun",
]
