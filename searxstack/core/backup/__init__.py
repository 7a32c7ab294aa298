from searxstack.core.backup.api import BackupManager, human_size, validate_snapshot_name
from searxstack.core.backup.lock import stack_lock
from searxstack.core.backup.models import RestoreResult, RetentionSummary, SnapshotResult, SnapshotSummary
from searxstack.core.backup.restorer import Restorer
from searxstack.core.backup.retention import prune_snapshots

__all__ = [
    "BackupManager",
    "RestoreResult",
    "Restorer",
    "RetentionSummary",
    "SnapshotResult",
    "SnapshotSummary",
    "human_size",
    "prune_snapshots",
    "stack_lock",
    "validate_snapshot_name",
]
