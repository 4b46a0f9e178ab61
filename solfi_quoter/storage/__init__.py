from .cutoffs import (
    CUTOFF_SLOT_OFFSET,
    GENERATED_SLOT_OFFSET,
    VenueCutoff,
    read_venue_cutoffs,
    u64_at_offset,
)
from .fetcher import SnapshotFetchError, SnapshotFetcher, snapshot_addresses
from .file_store import FileSnapshotStore
from .redis_store import RedisSnapshotStore
from .types import (
    AccountRecord,
    FreshnessMarker,
    Snapshot,
    SnapshotStore,
    SnapshotUnavailableError,
    load_snapshot,
)

__all__ = [
    "CUTOFF_SLOT_OFFSET",
    "GENERATED_SLOT_OFFSET",
    "AccountRecord",
    "FileSnapshotStore",
    "FreshnessMarker",
    "RedisSnapshotStore",
    "Snapshot",
    "SnapshotFetchError",
    "SnapshotFetcher",
    "SnapshotStore",
    "SnapshotUnavailableError",
    "VenueCutoff",
    "load_snapshot",
    "read_venue_cutoffs",
    "snapshot_addresses",
    "u64_at_offset",
]
