"""
In-process dispatch of contact research.

Contact creation hands work to dispatch() and the retry endpoint to
dispatch_retry(); both return immediately. Each research run executes as
its own asyncio task; its outcome is logged here and is never visible to
the code that enqueued it.
"""

import asyncio

from app.infrastructure.observability.logging import get_logger
from app.services.research_service import ResearchService, research_service

logger = get_logger(__name__)


class ResearchTaskDispatcher:
    """Tracks detached research tasks so shutdown can wait for them."""

    def __init__(self, service: ResearchService | None = None):
        self._service = service
        self._tasks: set[asyncio.Task] = set()

    @property
    def service(self) -> ResearchService:
        return self._service or research_service

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _track(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        # Event loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def dispatch(self, contact_id: str, domain: str) -> asyncio.Task:
        """Schedule research for a contact without awaiting it."""
        task = self._track(self._run(contact_id, domain), name=f"research:{contact_id}")
        logger.debug("Research task dispatched", contact_id=contact_id, domain=domain)
        return task

    def dispatch_retry(self, user_id: str, include_failed: bool = False) -> asyncio.Task:
        """Schedule a background re-run of the user's unfinished research."""
        task = self._track(
            self._run_retry(user_id, include_failed), name=f"research-retry:{user_id}"
        )
        logger.info("Research retry dispatched", user_id=user_id, include_failed=include_failed)
        return task

    async def _run(self, contact_id: str, domain: str) -> None:
        try:
            result = await self.service.research_contact_company(contact_id, domain)
            logger.info(
                "Auto-research finished",
                contact_id=contact_id,
                domain=domain,
                success=result.success,
                cache_hit=result.cache_hit,
            )
        except asyncio.CancelledError:
            logger.warning("Auto-research cancelled", contact_id=contact_id, domain=domain)
            raise
        except Exception as e:
            logger.error(
                "Auto-research crashed",
                contact_id=contact_id,
                domain=domain,
                error=str(e),
            )

    async def _run_retry(self, user_id: str, include_failed: bool) -> None:
        try:
            results = await self.service.retry_user_research(
                user_id, include_failed=include_failed
            )
            logger.info(
                "Research retry finished",
                user_id=user_id,
                total=len(results),
                succeeded=sum(1 for r in results if r.success),
            )
        except asyncio.CancelledError:
            logger.warning("Research retry cancelled", user_id=user_id)
            raise
        except Exception as e:
            logger.error("Research retry crashed", user_id=user_id, error=str(e))

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for in-flight tasks on shutdown, cancelling stragglers."""
        if not self._tasks:
            return

        pending = set(self._tasks)
        logger.info("Draining research tasks", count=len(pending), timeout=timeout)
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning(
                "Research tasks cancelled at shutdown; contacts left in processing",
                count=len(still_running),
            )


research_dispatcher = ResearchTaskDispatcher()
