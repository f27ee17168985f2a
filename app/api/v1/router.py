from fastapi import APIRouter

from app.api.v1.endpoints import admin, auth, events, plants, schedules, suggestions, users, watering

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(plants.router)
api_router.include_router(schedules.router)
api_router.include_router(watering.router)
api_router.include_router(suggestions.router)
api_router.include_router(events.router)
api_router.include_router(admin.router)
