# app/routes/health.py
"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.services.email_generation.ai_service import email_generation_service
from app.services.email_service import email_service
from app.services.research_dispatcher import research_dispatcher
from app.services.research_service import research_service

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "conversion-backend"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check: database pool plus provider modes.

    Providers running in mock mode are reported but do not fail readiness.
    """
    checks = {}
    overall_ok = True

    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                    "connection_time_ms": db_health.get("connection_time_ms", 0),
                }
            )

        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    checks["enrichment"] = {"ok": True, **research_service.status()}
    checks["delivery"] = {"ok": True, **email_service.get_email_service_status()}
    checks["generation"] = {"ok": True, **email_generation_service.status()}
    checks["research_tasks"] = {"ok": True, "in_flight": research_dispatcher.in_flight}
    checks["configuration"] = {"ok": True, "environment": settings.environment}

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/database")
async def database_health():
    """Detailed database pool health information."""
    return await db_health_check()
