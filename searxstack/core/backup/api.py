from __future__ import annotations

import logging
import os
import shutil
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from searxstack.core.backup.collector import collect_configs, require_compose_file
from searxstack.core.backup.lock import lock_path_for, stack_lock
from searxstack.core.backup.metadata import current_user, host_name, read_created, write_info
from searxstack.core.backup.models import SnapshotMetadata, SnapshotResult, SnapshotSummary
from searxstack.core.backup.retention import snapshot_dirs
from searxstack.core.config.models import StackConfig
from searxstack.core.config.paths import StackFsPaths
from searxstack.core.errors import OpsError, SnapshotExistsError, ValidationError
from searxstack.core.ops_log import OpsLogger, new_trace_id
from searxstack.core.runtime.interface import ContainerRuntime

log = logging.getLogger("searxstack.backup")

STAGING_PREFIX = ".staging-"


def validate_snapshot_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Backup name must not be empty.")
    if name in {".", ".."} or "/" in name or "\\" in name or os.sep in name:
        raise ValidationError("Backup name must be a single directory name.", name=name)
    if name.startswith((".", "_")):
        raise ValidationError("Backup name must not start with '.' or '_'.", name=name)
    return name


def dir_size(path: str) -> int:
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for fn in filenames:
            fp = os.path.join(dirpath, fn)
            if not os.path.islink(fp):
                total += os.path.getsize(fp)
    return total


def human_size(num: int) -> str:
    """du -sh style: 512B, 4.0K, 1.2M."""
    value = float(num)
    for unit in ("B", "K", "M", "G", "T"):
        if value < 1024 or unit == "T":
            if unit == "B":
                return f"{int(value)}B"
            return f"{value:.1f}{unit}"
        value /= 1024.0
    return f"{value:.1f}T"


class BackupManager:
    def __init__(
        self,
        *,
        cfg: StackConfig,
        fs: StackFsPaths,
        runtime: ContainerRuntime,
        ops: Optional[OpsLogger] = None,
        now: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.cfg = cfg
        self.fs = fs
        self.runtime = runtime
        self.ops = ops
        self._now = now

    @property
    def backups_dir(self) -> str:
        return self.fs.resolve(self.cfg.stack.backups_dir)

    def snapshot_path(self, name: str) -> str:
        return os.path.join(self.backups_dir, validate_snapshot_name(name))

    def default_name(self) -> str:
        return f"{self.cfg.backup.default_name_prefix}-{self._now().strftime('%Y%m%d-%H%M%S')}"

    def list_snapshots(self) -> List[SnapshotSummary]:
        return [
            SnapshotSummary(name=os.path.basename(p), path=p, created=read_created(p), mtime=os.path.getmtime(p))
            for p in snapshot_dirs(self.backups_dir)
        ]

    def create_snapshot(self, name: Optional[str] = None) -> SnapshotResult:
        name = validate_snapshot_name(name) if name is not None else self.default_name()
        trace_id = new_trace_id("backup")
        log.info("Starting backup process...")
        log.info("Backup name: %s", name)
        os.makedirs(self.backups_dir, exist_ok=True)
        with stack_lock(lock_path_for(self.backups_dir)):
            try:
                result = self._create_locked(name)
            except OpsError as e:
                self._ops(trace_id, "backup.create", "failed", {"name": name, "error": e.code})
                raise
        self._ops(trace_id, "backup.create", "success", result.model_dump())
        return result

    # ---------- internals ----------
    def _create_locked(self, name: str) -> SnapshotResult:
        target = os.path.join(self.backups_dir, name)
        if os.path.lexists(target):
            raise SnapshotExistsError(f"Backup directory already exists: {target}", path=target)
        require_compose_file(self.fs.root, self.cfg.stack)

        staging = os.path.join(self.backups_dir, f"{STAGING_PREFIX}{name}-{uuid.uuid4().hex[:8]}")
        log.info("Creating backup directory: %s", target)
        os.makedirs(staging)
        try:
            archived, skipped = self._archive_volumes(staging)
            log.info("Backing up configuration files...")
            copied = collect_configs(self.fs.root, staging, self.cfg.stack)
            log.info("Creating backup metadata...")
            write_info(staging, self._metadata(name, archived, skipped, copied))
            os.rename(staging, target)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        size = dir_size(target)
        log.info("Backup completed successfully!")
        log.info("Backup location: %s", target)
        log.info("Backup size: %s", human_size(size))
        log.info("To restore this backup, run: searxstack-restore %s", name)
        return SnapshotResult(
            name=name,
            path=target,
            size_bytes=size,
            archived_volumes=archived,
            skipped_volumes=skipped,
            copied_files=copied,
        )

    def _archive_volumes(self, dest_dir: str) -> Tuple[List[str], List[str]]:
        log.info("Backing up Docker volumes...")
        present = set(self.runtime.list_volumes())
        archived: List[str] = []
        skipped: List[str] = []
        for vol in self.cfg.backup.volumes:
            label = vol.label or vol.name
            if vol.name not in present:
                log.info("%s volume not found, skipping...", label)
                skipped.append(vol.name)
                continue
            log.info("Backing up %s volume...", label)
            self.runtime.archive_volume(vol.name, dest_dir, vol.archive)
            archived.append(vol.name)
        return archived, skipped

    def _metadata(self, name: str, archived: List[str], skipped: List[str], copied: List[str]) -> SnapshotMetadata:
        return SnapshotMetadata(
            name=name,
            created=self._now(),
            created_by=current_user(),
            host=host_name(),
            compose_status=self.runtime.compose_ps_text(),
            images=self.runtime.list_images_text(self.cfg.backup.image_filters),
            volumes=self.runtime.list_volumes_text(self.cfg.backup.volume_filter),
            archived_volumes=archived,
            skipped_volumes=skipped,
            copied_files=copied,
        )

    def _ops(self, trace_id: str, event: str, outcome: str, details: dict) -> None:
        if self.ops is not None:
            self.ops.log(trace_id=trace_id, event=event, outcome=outcome, details=details)
