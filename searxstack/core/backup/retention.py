from __future__ import annotations

import logging
import os
import shutil
from typing import List

from searxstack.core.backup.models import RetentionSummary

log = logging.getLogger("searxstack.retention")


def snapshot_dirs(backups_dir: str) -> List[str]:
    """Snapshot directories under backups_dir, newest first by mtime. Hidden entries are not snapshots."""
    if not os.path.isdir(backups_dir):
        return []
    items = [
        os.path.join(backups_dir, name)
        for name in os.listdir(backups_dir)
        if not name.startswith((".", "_")) and os.path.isdir(os.path.join(backups_dir, name))
    ]
    items.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    return items


def prune_snapshots(backups_dir: str, *, keep_last: int = 5) -> RetentionSummary:
    if keep_last < 1:
        raise ValueError("keep_last must be >= 1")
    items = snapshot_dirs(backups_dir)
    keep, drop = items[:keep_last], items[keep_last:]
    removed: List[str] = []
    for path in drop:
        shutil.rmtree(path)
        removed.append(os.path.basename(path))
        log.info("Removed old backup: %s", os.path.basename(path))
    if not removed:
        log.info("No old backups to remove (keeping last %d)", keep_last)
    return RetentionSummary(removed=removed, kept=[os.path.basename(p) for p in keep])
