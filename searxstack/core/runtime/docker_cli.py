from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from searxstack.core.errors import MissingToolError, RuntimeCommandError
from searxstack.core.runtime.interface import ContainerRuntime
from searxstack.core.runtime.models import CommandResult, ContainerStatus, VersionInfo

log = logging.getLogger("searxstack.runtime")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def parse_compose_ps(raw: str) -> List[ContainerStatus]:
    """
    Parse `docker compose ps --format json`. Older compose releases print one
    JSON array, newer ones one object per line.
    """
    text = (raw or "").strip()
    if not text:
        return []
    items: List[Dict[str, Any]] = []
    if text.startswith("["):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = []
        items = [d for d in data if isinstance(d, dict)]
    else:
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                items.append(obj)
    return [
        ContainerStatus(
            name=str(d.get("Name") or ""),
            service=str(d.get("Service") or ""),
            state=str(d.get("State") or ""),
            status=str(d.get("Status") or ""),
            health=str(d.get("Health") or ""),
        )
        for d in items
    ]


class DockerCliRuntime(ContainerRuntime):
    def __init__(
        self,
        *,
        project_dir: str = ".",
        project_name: Optional[str] = None,
        compose_file: Optional[str] = None,
        helper_image: str = "alpine",
        docker_bin: str = "docker",
        timeout_seconds: float = 600.0,
        runner: Optional[Runner] = None,
    ):
        self.project_dir = project_dir
        self.project_name = project_name
        self.compose_file = compose_file
        self.helper_image = helper_image
        self.docker_bin = docker_bin
        self.timeout_seconds = float(timeout_seconds)
        self._runner: Runner = runner or subprocess.run

    @classmethod
    def from_config(cls, cfg, *, root: str = ".", runner: Optional[Runner] = None) -> "DockerCliRuntime":  # noqa: ANN001
        stack = cfg.stack
        return cls(
            project_dir=root,
            project_name=stack.project,
            compose_file=stack.compose_file,
            helper_image=stack.helper_image,
            docker_bin=stack.docker_bin,
            timeout_seconds=stack.command_timeout_seconds,
            runner=runner,
        )

    # ---------- plumbing ----------
    def _run(self, args: Sequence[str], *, check: bool = False, timeout: Optional[float] = None, cwd: Optional[str] = None) -> CommandResult:
        argv = [str(a) for a in args]
        log.debug("run: %s", " ".join(argv))
        try:
            proc = self._runner(
                argv,
                capture_output=True,
                text=True,
                timeout=float(timeout or self.timeout_seconds),
                cwd=cwd,
            )
        except FileNotFoundError as e:
            raise MissingToolError(f"{argv[0]} is not installed", command=" ".join(argv)) from e
        except subprocess.TimeoutExpired as e:
            raise RuntimeCommandError(f"`{' '.join(argv)}` timed out", timeout=e.timeout) from e
        res = CommandResult(args=argv, returncode=int(proc.returncode), stdout=str(proc.stdout or ""), stderr=str(proc.stderr or ""))
        if check and not res.ok:
            raise RuntimeCommandError(res.describe(), returncode=res.returncode)
        return res

    def _docker(self, *args: str, check: bool = False, timeout: Optional[float] = None) -> CommandResult:
        return self._run([self.docker_bin, *args], check=check, timeout=timeout)

    def _compose_argv(self, *args: str) -> List[str]:
        argv = [self.docker_bin, "compose"]
        if self.project_name:
            argv += ["--project-name", self.project_name]
        if self.compose_file:
            argv += ["--file", self.compose_file]
        return argv + list(args)

    def _compose(self, *args: str, check: bool = False) -> CommandResult:
        return self._run(self._compose_argv(*args), check=check, cwd=self.project_dir)

    # ---------- tooling / daemon ----------
    def is_available(self) -> bool:
        return shutil.which(self.docker_bin) is not None

    def compose_available(self) -> bool:
        if not self.is_available():
            return False
        try:
            return self._docker("compose", "version", "--short", timeout=15).ok
        except (MissingToolError, RuntimeCommandError):
            return False

    def daemon_running(self) -> bool:
        try:
            res = self._docker("info", "--format", "{{.ServerVersion}}", timeout=15)
        except (MissingToolError, RuntimeCommandError):
            return False
        return res.ok and bool(res.stdout.strip())

    def version_info(self) -> VersionInfo:
        docker = self._docker("--version", timeout=15)
        compose = self._docker("compose", "version", "--short", timeout=15)
        return VersionInfo(
            docker=docker.stdout.strip() if docker.ok else None,
            compose=compose.stdout.strip() if compose.ok else None,
        )

    # ---------- volumes ----------
    def list_volumes(self) -> List[str]:
        res = self._docker("volume", "ls", "--format", "{{.Name}}", check=True)
        return [line.strip() for line in res.stdout.splitlines() if line.strip()]

    def create_volume(self, name: str) -> None:
        self._docker("volume", "create", name, check=True)

    def remove_volume(self, name: str, *, missing_ok: bool = True) -> bool:
        res = self._docker("volume", "rm", name)
        if res.ok:
            return True
        if missing_ok and "no such volume" in (res.stderr + res.stdout).lower():
            return False
        raise RuntimeCommandError(res.describe(), volume=name)

    def archive_volume(self, volume: str, dest_dir: str, archive_name: str) -> None:
        self._docker(
            "run", "--rm",
            "-v", f"{volume}:/source:ro",
            "-v", f"{os.path.abspath(dest_dir)}:/backup",
            self.helper_image,
            "tar", "czf", f"/backup/{archive_name}", "-C", "/source", ".",
            check=True,
        )

    def extract_volume(self, volume: str, src_dir: str, archive_name: str) -> None:
        self._docker(
            "run", "--rm",
            "-v", f"{volume}:/target",
            "-v", f"{os.path.abspath(src_dir)}:/backup:ro",
            self.helper_image,
            "tar", "xzf", f"/backup/{archive_name}", "-C", "/target",
            check=True,
        )

    def list_volumes_text(self, name_filter: Optional[str] = None) -> str:
        args = ["volume", "ls"]
        if name_filter:
            args += ["--filter", name_filter]
        try:
            res = self._docker(*args)
        except (MissingToolError, RuntimeCommandError):
            return "Docker not available"
        return res.stdout if res.ok else "Docker not available"

    # ---------- compose ----------
    def compose_ps(self) -> List[ContainerStatus]:
        res = self._compose("ps", "--format", "json")
        if not res.ok:
            log.debug("compose ps failed: %s", res.describe())
            return []
        return parse_compose_ps(res.stdout)

    def compose_ps_text(self) -> str:
        try:
            res = self._compose("ps")
        except (MissingToolError, RuntimeCommandError):
            return "Docker Compose not available"
        return res.stdout if res.ok else "Docker Compose not available"

    def compose_up(self, *, force_recreate: bool = False, build: bool = False) -> None:
        args = ["up", "-d"]
        if force_recreate:
            args.append("--force-recreate")
        if build:
            args.append("--build")
        self._compose(*args, check=True)

    def compose_down(self) -> None:
        self._compose("down", check=True)

    def compose_pull(self) -> None:
        self._compose("pull", check=True)

    # ---------- images / containers ----------
    def image_prune(self) -> str:
        return self._docker("image", "prune", "-f", check=True).stdout

    def list_images_text(self, filters: Sequence[str] = ()) -> str:
        args = ["images"]
        for f in filters:
            args += ["--filter", f]
        try:
            res = self._docker(*args)
        except (MissingToolError, RuntimeCommandError):
            return "Docker not available"
        return res.stdout if res.ok else "Docker not available"

    def running_containers(self) -> List[Tuple[str, str]]:
        try:
            res = self._docker("ps", "--format", "{{.Names}}\t{{.Status}}", timeout=30)
        except (MissingToolError, RuntimeCommandError):
            return []
        if not res.ok:
            return []
        out: List[Tuple[str, str]] = []
        for line in res.stdout.splitlines():
            if not line.strip():
                continue
            name, _, status = line.partition("\t")
            out.append((name.strip(), status.strip()))
        return out

    def exec(self, container: str, args: Sequence[str]) -> CommandResult:
        return self._docker("exec", container, *args, timeout=30)

    def logs(self, container: str, *, since: str) -> str:
        res = self._docker("logs", f"--since={since}", container, timeout=60)
        return (res.stdout or "") + (res.stderr or "")
