import logging

import app.models  # noqa: F401
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.core.baas import BaaSError, get_auth_gateway
from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.routers import announcements as announcements_router
from app.routers import auth as auth_router
from app.routers import dashboard as dashboard_router
from app.routers import events as events_router
from app.routers import members as members_router
from app.routers import pastors as pastors_router
from app.routers import profile as profile_router
from app.routers import sermons as sermons_router
from app.routers import super_admins as super_admins_router
from app.routers import sync as sync_router
from app.routers import users as users_router
from app.routers import whoami as whoami_router
from app.services.reconciliation import reconcile_all

app = FastAPI(title="Gospel Labour Ministry API", version="0.1.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(whoami_router.router)
app.include_router(profile_router.router)
app.include_router(members_router.router)
app.include_router(pastors_router.router)
app.include_router(users_router.router)
app.include_router(super_admins_router.router)
app.include_router(sync_router.router)
app.include_router(dashboard_router.router)
app.include_router(events_router.router)
app.include_router(sermons_router.router)
app.include_router(announcements_router.router)


@app.exception_handler(BaaSError)
async def baas_error_handler(request: Request, exc: BaaSError) -> JSONResponse:
    logger.warning("baas error", extra={"path": request.url.path, "code": exc.code, "error": exc.message})
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": exc.message, "code": exc.code},
    )


@app.on_event("startup")
def ensure_optional_columns() -> None:
    """Guard the member link column so databases created before it existed keep working."""

    if engine.dialect.name != "postgresql":
        return

    with engine.begin() as connection:
        connection.execute(
            text(
                "ALTER TABLE IF EXISTS members "
                "ADD COLUMN IF NOT EXISTS user_id VARCHAR(36) REFERENCES profiles(id) ON DELETE SET NULL"
            )
        )
        connection.execute(text("CREATE INDEX IF NOT EXISTS ix_members_user_id ON members (user_id)"))
        connection.execute(
            text("ALTER TABLE IF EXISTS members ADD COLUMN IF NOT EXISTS churchunits JSONB NOT NULL DEFAULT '[]'::jsonb")
        )


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


def _run_nightly_reconciliation() -> None:
    auth_users = None
    try:
        auth_users = get_auth_gateway().list_users()
    except BaaSError as exc:
        logger.warning("auth user listing unavailable, reconciling profiles only", extra={"error": exc.message})

    with SessionLocal() as session:
        report = reconcile_all(session, auth_users=auth_users, batch_size=settings.SYNC_BATCH_SIZE)
        logger.info(
            "nightly_reconciliation",
            extra={
                "profiles_created": report.profiles_created,
                "members_linked": report.members_linked,
                "members_added": report.sync.added if report.sync else 0,
                "conflicts": len(report.consolidation.conflicts) if report.consolidation else 0,
                "failed_steps": len(report.errors),
            },
        )


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    if not settings.SYNC_SCHEDULE_ENABLED:
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        _run_nightly_reconciliation,
        trigger="cron",
        hour=settings.SYNC_SCHEDULE_HOUR,
        minute=0,
        id="nightly_reconciliation",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
