import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.triage.src.triage.config import settings
from services.triage.src.triage.core.aging import AgingMonitor
from services.triage.src.triage.core.identity import IdentityAllocator
from services.triage.src.triage.core.notifications import (
    NotificationDispatcher,
    build_notifier,
)
from services.triage.src.triage.core.scheduler import TriageScheduler
from services.triage.src.triage.routes import api_router

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the queues and background workers; tear them down on exit."""
    scheduler = TriageScheduler(settings.initial_queue_capacity)
    dispatcher = NotificationDispatcher(
        build_notifier(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        ),
        max_workers=settings.notification_workers,
    )
    monitor = AgingMonitor(
        scheduler,
        dispatcher,
        thresholds=settings.escalation_thresholds,
        interval_seconds=settings.aging_interval_seconds,
    )

    app.state.scheduler = scheduler
    app.state.dispatcher = dispatcher
    app.state.allocator = IdentityAllocator()
    app.state.aging_monitor = monitor

    if settings.aging_enabled:
        monitor.start()

    yield

    monitor.shutdown()
    dispatcher.shutdown()
    scheduler.close()


app = FastAPI(title="ED Triage Queue API", lifespan=lifespan)

# CORS for frontend
cors_origins = [
    "http://localhost:3000",
    "https://localhost:3000",
]

if settings.cors_origin:
    cors_origins.append(settings.cors_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"service": "ed-triage-queue-api", "docs": "/docs"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
