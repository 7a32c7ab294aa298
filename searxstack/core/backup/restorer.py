from __future__ import annotations

import logging
import os
import threading
from typing import Callable, List, Optional

from searxstack.core.backup.api import BackupManager
from searxstack.core.backup.collector import restore_configs
from searxstack.core.backup.lock import lock_path_for, stack_lock
from searxstack.core.backup.metadata import read_info
from searxstack.core.backup.models import RestoreResult
from searxstack.core.errors import OpsError, SnapshotNotFoundError, ValidationError
from searxstack.core.ops_log import new_trace_id
from searxstack.core.readiness import RetryPolicy, stack_is_ready, wait_for

log = logging.getLogger("searxstack.restore")

CONFIRM_PROMPT = "Are you sure you want to continue? (y/N): "


def is_affirmative(answer: Optional[str]) -> bool:
    """Only a leading y/Y confirms."""
    return bool(answer) and answer.strip()[:1] in {"y", "Y"}


class Restorer:
    """
    Replace the running stack's configuration and volume data with a snapshot.

    The caller supplies `confirm`; it is asked exactly once, before any
    container or file is touched.
    """

    def __init__(
        self,
        backups: BackupManager,
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.backups = backups
        self.cfg = backups.cfg
        self.runtime = backups.runtime
        self.policy = policy or RetryPolicy.from_config(self.cfg.readiness)
        self._sleep = sleep
        self._cancel = cancel

    def restore(self, name: str, *, confirm: Callable[[str], bool]) -> RestoreResult:
        if not name:
            raise ValidationError("Please provide a backup name.")
        snap = self.backups.snapshot_path(name)
        if not os.path.isdir(snap):
            raise SnapshotNotFoundError(f"Backup directory not found: {snap}", path=snap)

        log.info("Starting restore process...")
        log.info("Found backup: %s", snap)
        info = read_info(snap)
        if info:
            log.info("Backup information:\n%s", info.rstrip())

        log.warning("This will stop the current SearXNG stack and restore from backup.")
        log.warning("Current data will be replaced with backup data.")
        if not confirm(CONFIRM_PROMPT):
            log.info("Restore cancelled by user")
            return RestoreResult(name=name, cancelled=True)

        trace_id = new_trace_id("restore")
        with stack_lock(lock_path_for(self.backups.backups_dir)):
            try:
                result = self._apply(name, snap)
            except OpsError as e:
                self._ops(trace_id, "failed", {"name": name, "error": e.code})
                raise
        self._ops(trace_id, "success", result.model_dump())
        return result

    # ---------- steps ----------
    def _apply(self, name: str, snap: str) -> RestoreResult:
        stopped = self._stop_stack()
        log.info("Restoring configuration files...")
        files = restore_configs(snap, self.backups.fs.root, self.cfg.stack)
        volumes = self._restore_volumes(snap)
        attempts = self._start_stack()

        log.info("Restore completed successfully!")
        log.info("Stack status:\n%s", self.runtime.compose_ps_text().rstrip())
        return RestoreResult(
            name=name,
            stopped_stack=stopped,
            restored_files=files,
            restored_volumes=volumes,
            attempts=attempts,
        )

    def _stop_stack(self) -> bool:
        log.info("Stopping current SearXNG stack...")
        if self.runtime.stack_running():
            self.runtime.compose_down()
            log.info("Stack stopped")
            return True
        log.info("Stack was not running")
        return False

    def _restore_volumes(self, snap: str) -> List[str]:
        log.info("Restoring Docker volumes...")
        restored: List[str] = []
        for vol in self.cfg.backup.volumes:
            if not os.path.isfile(os.path.join(snap, vol.archive)):
                continue
            label = vol.label or vol.name
            log.info("Restoring %s volume...", label)
            self.runtime.remove_volume(vol.name, missing_ok=True)
            self.runtime.create_volume(vol.name)
            self.runtime.extract_volume(vol.name, snap, vol.archive)
            restored.append(vol.name)
            log.info("%s volume restored", label)
        return restored

    def _start_stack(self) -> int:
        log.info("Starting SearXNG stack...")
        self.runtime.compose_up()
        attempts = wait_for(
            lambda: stack_is_ready(self.runtime),
            self.policy,
            what="services",
            cancel=self._cancel,
            sleep=self._sleep,
        )
        log.info("Stack started successfully")
        return attempts

    def _ops(self, trace_id: str, outcome: str, details: dict) -> None:
        if self.backups.ops is not None:
            self.backups.ops.log(trace_id=trace_id, event="restore.apply", outcome=outcome, details=details)
