from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from searxstack.core.errors import GitSyncError
from searxstack.core.runtime.models import CommandResult

log = logging.getLogger("searxstack.git")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


@dataclass(frozen=True)
class CommitInfo:
    hash: str
    short_hash: str
    subject: str
    author: str


@dataclass(frozen=True)
class GitSyncResult:
    branch: str
    stashed: bool
    stash_message: Optional[str]
    switched_branch: bool
    commit: CommitInfo


class GitClient:
    def __init__(
        self,
        *,
        work_dir: str = ".",
        git_bin: str = "git",
        runner: Optional[Runner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        now: Callable[[], datetime] = datetime.now,
        timeout_seconds: float = 300.0,
    ):
        self.work_dir = work_dir
        self.git_bin = git_bin
        self._runner: Runner = runner or subprocess.run
        self._which = which
        self._now = now
        self.timeout_seconds = float(timeout_seconds)

    def _git(self, *args: str, check: bool = True) -> CommandResult:
        argv = [self.git_bin, *args]
        try:
            proc = self._runner(argv, capture_output=True, text=True, timeout=self.timeout_seconds, cwd=self.work_dir)
        except FileNotFoundError as e:
            raise GitSyncError("git is not installed", command=" ".join(argv)) from e
        except subprocess.TimeoutExpired as e:
            raise GitSyncError(f"`{' '.join(argv)}` timed out", timeout=e.timeout) from e
        res = CommandResult(args=argv, returncode=int(proc.returncode), stdout=str(proc.stdout or ""), stderr=str(proc.stderr or ""))
        if check and not res.ok:
            raise GitSyncError(res.describe(), returncode=res.returncode)
        return res

    def ensure_repository(self) -> None:
        if self._which(self.git_bin) is None:
            raise GitSyncError("git is not installed", git_bin=self.git_bin)
        res = self._git("rev-parse", "--is-inside-work-tree", check=False)
        if not res.ok or res.stdout.strip() != "true":
            raise GitSyncError("Not a git repository", work_dir=self.work_dir)

    def is_dirty(self) -> bool:
        # untracked files (backups/, logs/, config/) belong to the stack, not the checkout
        return bool(self._git("status", "--porcelain", "--untracked-files=no").stdout.strip())

    def stash(self) -> str:
        message = f"deploy-autostash-{self._now().strftime('%Y%m%d-%H%M%S')}"
        self._git("stash", "push", "-m", message)
        return message

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def checkout(self, branch: str) -> None:
        self._git("checkout", branch)

    def pull_rebase(self, remote: str, branch: str) -> None:
        self._git("pull", "--rebase", "--autostash", remote, branch)

    def head_commit(self) -> CommitInfo:
        out = self._git("log", "-1", "--format=%H%n%h%n%s%n%an").stdout.splitlines()
        out += [""] * (4 - len(out))
        return CommitInfo(hash=out[0].strip(), short_hash=out[1].strip(), subject=out[2].strip(), author=out[3].strip())

    def sync(self, *, remote: str = "origin", branch: str = "main") -> GitSyncResult:
        """Stash uncommitted tracked changes, switch to `branch`, and rebase onto `remote/branch`."""
        log.info("Syncing source from git...")
        self.ensure_repository()

        stash_message: Optional[str] = None
        if self.is_dirty():
            stash_message = self.stash()
            log.warning("Uncommitted changes stashed as %s", stash_message)

        switched = False
        current = self.current_branch()
        if current != branch:
            log.info("Switching from %s to %s", current, branch)
            self.checkout(branch)
            switched = True

        log.info("Pulling latest changes from %s/%s...", remote, branch)
        self.pull_rebase(remote, branch)
        commit = self.head_commit()
        log.info("Now at %s: %s (%s)", commit.short_hash, commit.subject, commit.author)
        return GitSyncResult(
            branch=branch,
            stashed=stash_message is not None,
            stash_message=stash_message,
            switched_branch=switched,
            commit=commit,
        )
