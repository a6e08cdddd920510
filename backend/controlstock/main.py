"""
ControlStock - Main FastAPI Application
"""
import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from controlstock.config import settings
from controlstock.database import SessionLocal, init_db
from controlstock.api.exception_handlers import register_exception_handlers
from controlstock.services.audit_service import audit_recorder
from controlstock.services.seed_service import seed_defaults
from controlstock.services.session_service import SessionManager

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Controlled-substance inventory for hospital pharmacies",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Replaced on startup by a manager bound to the running loop
app.state.session_manager = SessionManager(SessionLocal, audit_recorder, settings.inactivity_timeout_seconds)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.APP_VERSION}


@app.on_event("startup")
async def startup():
    """Create tables, optionally seed defaults, and close sessions that went idle while we were down."""
    init_db()
    db = SessionLocal()
    try:
        if settings.SEED_DEFAULT_DATA:
            seed_defaults(db)
        manager = SessionManager(
            SessionLocal,
            audit_recorder,
            settings.inactivity_timeout_seconds,
            loop=asyncio.get_running_loop(),
        )
        expired = manager.expire_stale_sessions(db)
    finally:
        db.close()
    app.state.session_manager = manager
    logger.info(
        "%s %s started (inactivity timeout %s, overdrawn exits %s, %d stale session(s) closed)",
        settings.APP_NAME,
        settings.APP_VERSION,
        manager.timeout_label,
        "rejected" if settings.REJECT_OVERDRAWN_EXITS else "clamped",
        expired,
    )


@app.on_event("shutdown")
def shutdown():
    app.state.session_manager.shutdown()
    logger.info("%s stopped", settings.APP_NAME)


from controlstock.api import (  # noqa: E402
    audit_router,
    auth_router,
    inventory_router,
    medicines_router,
    movements_router,
    reports_router,
    users_router,
    warehouses_router,
)

app.include_router(auth_router, prefix="/api", tags=["Authentication"])
app.include_router(users_router, prefix="/api", tags=["User Management"])
app.include_router(warehouses_router, prefix="/api", tags=["Warehouses"])
app.include_router(medicines_router, prefix="/api", tags=["Medicines"])
app.include_router(movements_router, prefix="/api", tags=["Movements"])
app.include_router(inventory_router, prefix="/api", tags=["Inventory"])
app.include_router(reports_router, prefix="/api", tags=["Reports"])
app.include_router(audit_router, prefix="/api", tags=["Audit Log"])
