"""
Research backfill job.

Re-runs company research for contacts left in pending or stuck in
processing (for example after a restart cancelled in-flight tasks), and
optionally for contacts whose research failed.
"""

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger
from app.services.research_service import research_service

logger = get_logger(__name__)


async def run_research_backfill(include_failed: bool = False) -> dict[str, int]:
    """Run one backfill pass over every user's unresolved contacts."""
    await db_pool.initialize()
    try:
        results = await research_service.retry_user_research(None, include_failed=include_failed)
        summary = {
            "total": len(results),
            "succeeded": sum(1 for r in results if r.success),
        }
        summary["failed"] = summary["total"] - summary["succeeded"]

        logger.info("Research backfill completed", include_failed=include_failed, **summary)
        return summary
    finally:
        await research_service.close()
        await db_pool.close()


async def run_research_backfill_with_failed() -> dict[str, int]:
    return await run_research_backfill(include_failed=True)
