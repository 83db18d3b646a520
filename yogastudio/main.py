import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api.routes import (
    auth,
    bookings,
    classes,
    locations,
    misc,
    notifications,
    reports,
    tutors,
    users,
)
from .core.errors import register_error_handlers
from .core.log import configure_logging
from .db.session import Base, engine, SessionLocal
from .config import get_settings
from .services.admin import ensure_admin_exists

logger = logging.getLogger(__name__)

app = FastAPI(title="Yoga Studio API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(classes.router, prefix="/api")
app.include_router(tutors.router, prefix="/api")
app.include_router(locations.router, prefix="/api")
app.include_router(bookings.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(misc.router, prefix="/api")


@app.on_event("startup")
async def startup_event() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        ensure_admin_exists(session, settings.default_admin_email, settings.default_admin_password)
    if not settings.auth_enforced:
        logger.warning("AUTH_ENFORCED is off: unauthenticated requests act as the first admin")
