"""
Snapshot Refresher

Stale-while-revalidate control over snapshot rebuilds. Reads never wait on
a rebuild; at most one rebuild runs per organization in this process, and an
optional Redis lock extends that across workers.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Union

import structlog

from inventory_analytics.analytics.summaries import InventorySnapshotData
from inventory_analytics.analytics.windows import utcnow
from inventory_analytics.snapshots.builder import SnapshotBuilder
from inventory_analytics.snapshots.locks import RedisRebuildLock
from inventory_analytics.snapshots.store import SnapshotMetadata, SnapshotStore

logger = structlog.get_logger(__name__)


class SnapshotRebuildError(Exception):
    """A rebuild failed; the previous generation, if any, is still current"""

    def __init__(self, organization_id: str, cause: BaseException):
        super().__init__(f"Inventory snapshot rebuild failed for {organization_id}: {cause}")
        self.organization_id = organization_id
        self.cause = cause


@dataclass(frozen=True)
class RefreshResult:
    skipped: bool
    computed_at: Optional[datetime] = None


class SnapshotRefresher:
    """
    Coordinates snapshot rebuilds.

    Example:
        refresher = SnapshotRefresher(store, builder, ttl_seconds=300)
        refresher.trigger(organization_id)          # fire and forget
        result = await refresher.refresh(organization_id, force=True)
    """

    def __init__(
        self,
        store: SnapshotStore,
        builder: SnapshotBuilder,
        ttl_seconds: int = 300,
        default_window_days: int = 30,
        lock: Optional[RedisRebuildLock] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.builder = builder
        self.ttl_seconds = ttl_seconds
        self.default_window_days = default_window_days
        self.lock = lock
        self.clock = clock
        self._inflight: Dict[str, asyncio.Task] = {}

    def is_stale(self, snapshot: Union[InventorySnapshotData, SnapshotMetadata, None]) -> bool:
        """Missing snapshots count as stale"""
        if snapshot is None:
            return True
        return self.clock() - snapshot.computed_at > timedelta(seconds=self.ttl_seconds)

    def is_rebuilding(self, organization_id: str) -> bool:
        task = self._inflight.get(organization_id)
        return task is not None and not task.done()

    @property
    def inflight_count(self) -> int:
        return sum(1 for task in self._inflight.values() if not task.done())

    def _window_days(self, analysis_window_days: Optional[float]) -> int:
        if analysis_window_days is None:
            return self.default_window_days
        return max(1, int(analysis_window_days))

    def trigger(self, organization_id: str, analysis_window_days: Optional[int] = None) -> bool:
        """
        Schedule a background rebuild.

        Returns:
            False when one is already in flight; the call is then a no-op
        """
        if self.is_rebuilding(organization_id):
            logger.debug("Rebuild already in flight", organization_id=organization_id)
            return False
        self._start(organization_id, self._window_days(analysis_window_days))
        return True

    async def rebuild(
        self,
        organization_id: str,
        analysis_window_days: Optional[int] = None,
    ) -> Optional[InventorySnapshotData]:
        """
        Rebuild now, joining an in-flight rebuild if there is one.

        Returns:
            The published snapshot, or None when another worker holds the
            rebuild lock

        Raises:
            SnapshotRebuildError: If the rebuild failed
        """
        task = self._inflight.get(organization_id)
        if task is None or task.done():
            task = self._start(organization_id, self._window_days(analysis_window_days))

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise SnapshotRebuildError(organization_id, RuntimeError("rebuild cancelled"))
            raise
        except Exception as e:
            raise SnapshotRebuildError(organization_id, e) from e

    async def refresh(
        self,
        organization_id: str,
        force: bool = False,
        analysis_window_days: Optional[int] = None,
    ) -> RefreshResult:
        """Rebuild unless the current snapshot is still fresh; `force` skips the check"""
        metadata = await self.store.read_metadata(organization_id)
        if not force and metadata is not None and not self.is_stale(metadata):
            return RefreshResult(skipped=True, computed_at=metadata.computed_at)

        snapshot = await self.rebuild(organization_id, analysis_window_days)
        if snapshot is None:
            return RefreshResult(skipped=True, computed_at=metadata.computed_at if metadata else None)
        return RefreshResult(skipped=False, computed_at=snapshot.computed_at)

    async def shutdown(self) -> None:
        """Wait for in-flight rebuilds to settle"""
        tasks = [task for task in self._inflight.values() if not task.done()]
        if tasks:
            logger.info("Draining in-flight rebuilds", count=len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)

    def _start(self, organization_id: str, window_days: int) -> asyncio.Task:
        task = asyncio.create_task(
            self._run(organization_id, window_days),
            name=f"inventory-rebuild:{organization_id}",
        )
        self._inflight[organization_id] = task
        task.add_done_callback(lambda done: self._on_done(organization_id, done))
        return task

    async def _run(self, organization_id: str, window_days: int) -> Optional[InventorySnapshotData]:
        if self.lock is None:
            return await self._build_and_publish(organization_id, window_days)

        async with self.lock.hold(organization_id) as acquired:
            if not acquired:
                return None
            return await self._build_and_publish(organization_id, window_days)

    async def _build_and_publish(self, organization_id: str, window_days: int) -> InventorySnapshotData:
        start = time.perf_counter()
        logger.info("Inventory snapshot rebuild started", organization_id=organization_id, window_days=window_days)

        snapshot = await self.builder.build(organization_id, window_days, now=self.clock())
        published = await self.store.publish(snapshot)

        logger.info(
            "Inventory snapshot rebuild completed",
            organization_id=organization_id,
            generation=published.generation,
            computed_at=published.computed_at.isoformat(),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return published

    def _on_done(self, organization_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(organization_id) is task:
            del self._inflight[organization_id]

        if task.cancelled():
            logger.warning("Inventory snapshot rebuild cancelled", organization_id=organization_id)
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "Inventory snapshot rebuild failed",
                organization_id=organization_id,
                error=str(error),
                error_type=type(error).__name__,
            )
