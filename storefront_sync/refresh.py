"""Periodic re-pull of a resource as a freshness fallback to push updates."""

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import Any
from typing import Optional

from storefront_sync.cache import call_loader
from storefront_sync.config import RefreshConfig

logger = getLogger(__name__)


class PeriodicRefresher:
    """Call ``fetch`` every ``interval`` seconds and hand results to ``on_result``.

    A failed fetch is logged and the loop keeps going; the next tick tries
    again. The push channel stays the primary source of updates, this only
    bounds how stale a view can get when events are missed.
    """

    def __init__(
        self,
        fetch: Callable[[], Any],
        *,
        interval: Optional[float] = None,
        on_result: Optional[Callable[[Any], Any]] = None,
        config: Optional[RefreshConfig] = None,
    ) -> None:
        self.fetch = fetch
        self.on_result = on_result
        self.config = config or RefreshConfig()
        self.interval = self.config.interval if interval is None else interval
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def refresh_now(self) -> Any:
        """Fetch once and deliver the result; failures are logged and yield None."""
        try:
            result = await call_loader(self.fetch)
        except Exception:
            logger.exception("Periodic refresh failed")
            return None

        if self.on_result is not None:
            try:
                await call_loader(self.on_result, result)
            except Exception:
                logger.exception("Periodic refresh result handler failed")
        return result

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.refresh_now()

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting periodic refresh every %.1fs", self.interval)
        self._refresh_task = asyncio.create_task(self._refresh_loop())

    def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        self._refresh_task = None
        logger.info("Stopped periodic refresh")
