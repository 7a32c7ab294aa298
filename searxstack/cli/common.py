from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from searxstack.core.backup.api import BackupManager
from searxstack.core.config.manager import ConfigManager, load_config
from searxstack.core.config.models import StackConfig
from searxstack.core.config.paths import StackFsPaths
from searxstack.core.errors import OpsError
from searxstack.core.logger import setup_logging
from searxstack.core.ops_log import OpsLogger
from searxstack.core.runtime.docker_cli import DockerCliRuntime
from searxstack.core.runtime.interface import ContainerRuntime

_TRUE = {"true", "1", "yes", "y", "on"}
_FALSE = {"false", "0", "no", "n", "off"}


def parse_bool(value: str) -> bool:
    v = str(value).strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def add_root_argument(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--root", default=".", help="Stack directory holding docker-compose.yaml (default: current directory)")


@dataclass
class StackContext:
    fs: StackFsPaths
    config: ConfigManager
    runtime: ContainerRuntime
    ops: OpsLogger

    @property
    def cfg(self) -> StackConfig:
        return self.config.get()

    def backup_manager(self) -> BackupManager:
        return BackupManager(cfg=self.cfg, fs=self.fs, runtime=self.runtime, ops=self.ops)


def open_stack(
    root: str,
    *,
    verbose: bool = False,
    read_only: bool = False,
    runtime_factory: Optional[Callable[[StackConfig, str], ContainerRuntime]] = None,
) -> StackContext:
    fs = StackFsPaths(root)
    logger = setup_logging(None if read_only else fs.logs_dir, verbose=verbose)
    cm = load_config(root, logger=logger, read_only=read_only)
    cfg = cm.get()
    if runtime_factory is None:
        runtime: ContainerRuntime = DockerCliRuntime.from_config(cfg, root=root)
    else:
        runtime = runtime_factory(cfg, root)
    return StackContext(fs=fs, config=cm, runtime=runtime, ops=OpsLogger(path=fs.ops_log))


def run_guarded(fn: Callable[[], int]) -> int:
    """Run a CLI body; OpsError becomes an ERROR log line and exit status 1."""
    try:
        return fn()
    except OpsError as e:
        logging.getLogger("searxstack").error("%s", e.user_message)
        return 1
