from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from searxstack.core.runtime.models import CommandResult, ContainerStatus, VersionInfo


class ContainerRuntime(ABC):
    """
    Operations the stack tooling needs from the container runtime.

    Volume archive/extract run inside a disposable helper container:
    the named volume is mounted at /source (read-only) or /target, the
    snapshot directory at /backup.
    """

    # ---- tooling / daemon ----
    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def compose_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def daemon_running(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def version_info(self) -> VersionInfo:
        raise NotImplementedError

    # ---- volumes ----
    @abstractmethod
    def list_volumes(self) -> List[str]:
        raise NotImplementedError

    def volume_exists(self, name: str) -> bool:
        return name in self.list_volumes()

    @abstractmethod
    def create_volume(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_volume(self, name: str, *, missing_ok: bool = True) -> bool:
        """Remove a volume; returns False when it did not exist and missing_ok is set."""
        raise NotImplementedError

    @abstractmethod
    def archive_volume(self, volume: str, dest_dir: str, archive_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def extract_volume(self, volume: str, src_dir: str, archive_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_volumes_text(self, name_filter: Optional[str] = None) -> str:
        raise NotImplementedError

    # ---- compose ----
    @abstractmethod
    def compose_ps(self) -> List[ContainerStatus]:
        raise NotImplementedError

    @abstractmethod
    def compose_ps_text(self) -> str:
        raise NotImplementedError

    def stack_running(self) -> bool:
        return any(c.running for c in self.compose_ps())

    @abstractmethod
    def compose_up(self, *, force_recreate: bool = False, build: bool = False) -> None:
        raise NotImplementedError

    @abstractmethod
    def compose_down(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def compose_pull(self) -> None:
        raise NotImplementedError

    # ---- images / containers ----
    @abstractmethod
    def image_prune(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def list_images_text(self, filters: Sequence[str] = ()) -> str:
        raise NotImplementedError

    @abstractmethod
    def running_containers(self) -> List[Tuple[str, str]]:
        """(name, status) pairs as reported by `docker ps`."""
        raise NotImplementedError

    @abstractmethod
    def exec(self, container: str, args: Sequence[str]) -> CommandResult:
        raise NotImplementedError

    @abstractmethod
    def logs(self, container: str, *, since: str) -> str:
        raise NotImplementedError
