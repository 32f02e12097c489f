"""FastAPI application entry point."""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import Base, engine
from app.exception_handlers import register_exception_handlers
from app.logging_config import setup_logging
from app.services.notification_dispatcher import shutdown_dispatcher

# Import routers
from app.routers import members, events, rsvps

# Import all models so Base.metadata knows about them
from app.models.member import Member        # noqa: F401
from app.models.event import Event          # noqa: F401
from app.models.rsvp import EventRSVP       # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Church Events",
    description="Event RSVPs for a church community: capacity-bounded admission with a FIFO waitlist",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register routers
app.include_router(members.router, prefix="/api/members", tags=["Members"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvps.router, prefix="/api/events", tags=["RSVPs"])


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("Church Events API started")


@app.on_event("shutdown")
def on_shutdown():
    """Drain queued notifications before the process exits."""
    shutdown_dispatcher()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
