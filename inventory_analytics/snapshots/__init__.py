"""
Snapshots Module

Versioned inventory snapshots with stale-while-revalidate rebuilds.
"""
from .builder import SnapshotBuilder
from .locks import RedisRebuildLock
from .refresher import RefreshResult, SnapshotRebuildError, SnapshotRefresher
from .store import SnapshotMetadata, SnapshotStore

__all__ = [
    "SnapshotBuilder",
    "RedisRebuildLock",
    "RefreshResult",
    "SnapshotRebuildError",
    "SnapshotRefresher",
    "SnapshotMetadata",
    "SnapshotStore",
]
