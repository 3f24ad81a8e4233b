"""Health check endpoint.

Checks: database connectivity, outgoing mail configuration, auth secret mode.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings

router = APIRouter()

VERSION = "1.0.0"


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    dependencies: dict[str, str]  # Simplified view for clients
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """Report dependency status; never requires authentication."""
    checks: dict[str, dict] = {}
    overall_healthy = True
    has_warning = False

    # 1. Database
    try:
        from sqlalchemy import text

        from app.db.database import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            if engine.dialect.name == "sqlite":
                wal = conn.execute(text("PRAGMA journal_mode")).fetchone()
                checks["database"] = {"status": "ok", "detail": f"journal_mode={wal[0]}"}
            else:
                checks["database"] = {"status": "ok", "detail": engine.dialect.name}
    except Exception as e:
        checks["database"] = {"status": "error", "detail": str(e)}
        overall_healthy = False

    # 2. Outgoing mail (password reset, support)
    from app.email.sender import is_email_configured
    if is_email_configured():
        checks["email"] = {"status": "ok", "detail": f"smtp={settings.smtp_host}:{settings.smtp_port}"}
    else:
        checks["email"] = {"status": "warning", "detail": "SMTP_USER/SMTP_PASSWORD not set (reset codes cannot be sent)"}
        has_warning = True

    # 3. Session token signing
    if settings.auth_secret:
        checks["auth"] = {"status": "ok", "detail": "AUTH_SECRET configured"}
    else:
        checks["auth"] = {"status": "warning", "detail": "AUTH_SECRET not set (per-process dev secret)"}
        has_warning = True

    dependencies = {name: check["status"] for name, check in checks.items()}

    if overall_healthy:
        status = "degraded" if has_warning else "healthy"
    else:
        status = "unhealthy"

    return HealthStatus(
        status=status,
        version=VERSION,
        checks=checks,
        dependencies=dependencies,
        timestamp=datetime.now(timezone.utc),
    )
