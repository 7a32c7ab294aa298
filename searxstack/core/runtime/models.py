from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class CommandResult:
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        err = (self.stderr or self.stdout or "").strip().splitlines()
        tail = err[-1] if err else ""
        return f"`{' '.join(self.args)}` exited {self.returncode}" + (f": {tail}" if tail else "")


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    service: str = ""
    state: str = ""
    status: str = ""
    health: str = ""

    @property
    def running(self) -> bool:
        return self.state.lower() == "running" or self.status.startswith("Up")

    @property
    def ready(self) -> bool:
        if not self.running:
            return False
        health = self.health.lower()
        if not health:
            # `docker ps` style status text: "Up 5 minutes (unhealthy)"
            text = self.status.lower()
            if "(unhealthy)" in text:
                health = "unhealthy"
            elif "health: starting" in text:
                health = "starting"
        return health not in {"unhealthy", "starting"}


@dataclass(frozen=True)
class VersionInfo:
    docker: Optional[str] = None
    compose: Optional[str] = None
