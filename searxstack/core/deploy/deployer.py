from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from searxstack.core.backup.api import BackupManager
from searxstack.core.backup.lock import lock_path_for, stack_lock
from searxstack.core.backup.models import RetentionSummary
from searxstack.core.backup.retention import prune_snapshots
from searxstack.core.deploy.git import GitClient, GitSyncResult
from searxstack.core.errors import MissingToolError, OpsError
from searxstack.core.ops_log import new_trace_id
from searxstack.core.readiness import RetryPolicy, stack_is_ready, wait_for

log = logging.getLogger("searxstack.deploy")


class DeployResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    force_rebuild: bool = False
    skipped_git: bool = False
    branch: Optional[str] = None
    commit_hash: Optional[str] = None
    commit_short: Optional[str] = None
    commit_subject: Optional[str] = None
    commit_author: Optional[str] = None
    stashed_as: Optional[str] = None
    backup_name: str
    backup_path: str
    attempts: int = 0
    elapsed_seconds: float = 0.0
    removed_snapshots: List[str] = Field(default_factory=list)
    kept_snapshots: List[str] = Field(default_factory=list)

    def summary_lines(self) -> List[str]:
        lines = ["Deployment summary:"]
        if self.commit_hash:
            lines.append(f"  Commit:   {self.commit_short} {self.commit_subject} ({self.commit_author})")
            lines.append(f"  Branch:   {self.branch}")
        else:
            lines.append("  Commit:   git sync skipped")
        if self.stashed_as:
            lines.append(f"  Stashed:  {self.stashed_as}")
        lines.append(f"  Backup:   {self.backup_path}")
        lines.append(f"  Rebuild:  {'forced' if self.force_rebuild else 'no'}")
        lines.append(f"  Duration: {self.elapsed_seconds:.1f}s")
        lines.append(f"  Kept backups: {len(self.kept_snapshots)}")
        if self.removed_snapshots:
            lines.append(f"  Removed backups: {', '.join(self.removed_snapshots)}")
        return lines


class Deployer:
    def __init__(
        self,
        backups: BackupManager,
        *,
        git: Optional[GitClient] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
        cancel: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.backups = backups
        self.cfg = backups.cfg
        self.runtime = backups.runtime
        self.git = git or GitClient(work_dir=backups.fs.root, git_bin=self.cfg.deploy.git_bin)
        self.policy = policy or RetryPolicy.from_config(self.cfg.readiness)
        self._sleep = sleep
        self._cancel = cancel
        self._clock = clock
        self._now = now

    def run(self, *, force_rebuild: bool = False, skip_git: bool = False) -> DeployResult:
        trace_id = new_trace_id("deploy")
        started = self._clock()
        log.info("Starting deployment process...")

        with stack_lock(lock_path_for(self.backups.backups_dir)):
            try:
                synced = None if skip_git else self.git.sync(remote=self.cfg.deploy.remote, branch=self.cfg.deploy.main_branch)
                if skip_git:
                    log.info("Skipping git sync")
                self.check_dependencies()

                log.info("Creating backup...")
                snapshot = self.backups.create_snapshot(self._now().strftime("%Y%m%d-%H%M%S"))
                log.info("Backup created at %s", snapshot.path)

                self.pull_images(force_rebuild=force_rebuild)
                self.deploy_stack(force_rebuild=force_rebuild)
                attempts = self.wait_for_services()
                retention = self.cleanup()
            except OpsError as e:
                self._ops(trace_id, "failed", {"error": e.code, "message": e.user_message})
                raise

        result = self._result(
            synced,
            force_rebuild=force_rebuild,
            skip_git=skip_git,
            backup_name=snapshot.name,
            backup_path=snapshot.path,
            attempts=attempts,
            elapsed=self._clock() - started,
            removed=retention.removed,
            kept=retention.kept,
        )
        log.info("Deployment completed successfully!")
        for line in result.summary_lines():
            log.info(line)
        log.info("Check service status with: docker compose ps")
        log.info("View logs with: docker compose logs -f")
        self._ops(trace_id, "success", result.model_dump())
        return result

    # ---------- steps ----------
    def check_dependencies(self) -> None:
        log.info("Checking dependencies...")
        tools = self.cfg.deploy.required_tools
        if "docker" in tools and not self.runtime.is_available():
            raise MissingToolError("Docker is not installed", tool="docker")
        if "compose" in tools and not self.runtime.compose_available():
            raise MissingToolError("Docker Compose is not installed", tool="docker compose")
        log.info("Dependencies check passed")

    def pull_images(self, *, force_rebuild: bool) -> None:
        log.info("Pulling latest Docker images...")
        if force_rebuild:
            log.info("Force rebuild requested - containers will be recreated and images rebuilt")
        self.runtime.compose_pull()
        log.info("Images pulled successfully")

    def deploy_stack(self, *, force_rebuild: bool) -> None:
        log.info("Deploying SearXNG stack...")
        if self.runtime.stack_running():
            log.info("Stopping current stack...")
            self.runtime.compose_down()
        log.info("Starting new stack...")
        self.runtime.compose_up(force_recreate=force_rebuild, build=force_rebuild)
        log.info("Stack deployed successfully")

    def wait_for_services(self) -> int:
        log.info("Waiting for services to be healthy...")
        attempts = wait_for(
            lambda: stack_is_ready(self.runtime),
            self.policy,
            what="services",
            cancel=self._cancel,
            sleep=self._sleep,
        )
        log.info("Services are running")
        return attempts

    def cleanup(self) -> RetentionSummary:
        log.info("Cleaning up old images and containers...")
        pruned = self.runtime.image_prune().strip()
        if pruned:
            log.info("%s", pruned)
        retention = prune_snapshots(self.backups.backups_dir, keep_last=self.cfg.backup.keep_last)
        log.info("Cleanup completed")
        return retention

    # ---------- internals ----------
    def _result(
        self,
        synced: Optional[GitSyncResult],
        *,
        force_rebuild: bool,
        skip_git: bool,
        backup_name: str,
        backup_path: str,
        attempts: int,
        elapsed: float,
        removed: List[str],
        kept: List[str],
    ) -> DeployResult:
        data = dict(
            force_rebuild=force_rebuild,
            skipped_git=skip_git,
            backup_name=backup_name,
            backup_path=backup_path,
            attempts=attempts,
            elapsed_seconds=round(elapsed, 3),
            removed_snapshots=removed,
            kept_snapshots=kept,
        )
        if synced is not None:
            data.update(
                branch=synced.branch,
                commit_hash=synced.commit.hash,
                commit_short=synced.commit.short_hash,
                commit_subject=synced.commit.subject,
                commit_author=synced.commit.author,
                stashed_as=synced.stash_message,
            )
        return DeployResult(**data)

    def _ops(self, trace_id: str, outcome: str, details: dict) -> None:
        if self.backups.ops is not None:
            self.backups.ops.log(trace_id=trace_id, event="deploy.complete", outcome=outcome, details=details)
