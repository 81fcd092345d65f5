import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.routes import bookings, misc, profiles, routines, teachers
from .db.session import Base, engine
from .config import get_settings
from .workers.scheduler import get_scheduler


settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Counselbook API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(profiles.router, prefix="/api/v1")
app.include_router(teachers.router, prefix="/api/v1")
app.include_router(routines.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")

scheduler = get_scheduler()


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    if settings.scheduler_enabled:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
