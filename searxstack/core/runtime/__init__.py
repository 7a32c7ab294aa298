from searxstack.core.runtime.docker_cli import DockerCliRuntime, parse_compose_ps
from searxstack.core.runtime.interface import ContainerRuntime
from searxstack.core.runtime.models import CommandResult, ContainerStatus, VersionInfo

__all__ = [
    "CommandResult",
    "ContainerRuntime",
    "ContainerStatus",
    "DockerCliRuntime",
    "VersionInfo",
    "parse_compose_ps",
]
