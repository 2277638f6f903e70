"""Router aggregation."""

from fastapi import APIRouter

from services.triage.src.triage.routes.queue import router as queue_router

api_router = APIRouter()
api_router.include_router(queue_router, prefix="/api", tags=["queue"])
