from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.plant import PlantRead, WateringEventRead


class StopWateringRequest(BaseModel):
    duration: Optional[int] = Field(None, ge=0, le=86_400, description="Seconds the plant was watered")


class WateringResponse(BaseModel):
    message: str
    plant: PlantRead
    entry: Optional[WateringEventRead] = None
