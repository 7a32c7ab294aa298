from __future__ import annotations

import logging
import os
import shutil
from typing import List, Tuple

from searxstack.core.config.models import StackFileConfig
from searxstack.core.errors import MissingComposeFileError

log = logging.getLogger("searxstack.backup")


def config_entries(stack: StackFileConfig) -> List[Tuple[str, bool]]:
    """(relative path, mandatory) for every configuration artifact a snapshot carries."""
    return [
        (stack.settings_dir, False),
        (stack.proxy_config, False),
        (stack.compose_file, True),
        (stack.env_file, False),
    ]


def require_compose_file(root: str, stack: StackFileConfig) -> str:
    path = os.path.join(root, stack.compose_file)
    if not os.path.isfile(path):
        raise MissingComposeFileError(f"{stack.compose_file} not found", path=path)
    return path


def _copy(src: str, dst: str) -> None:
    if os.path.isdir(src):
        shutil.copytree(src, dst, symlinks=True)
    else:
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        shutil.copy2(src, dst)


def collect_configs(root: str, dest_dir: str, stack: StackFileConfig) -> List[str]:
    """Copy configuration artifacts into dest_dir. Returns the relative paths copied."""
    copied: List[str] = []
    for rel, mandatory in config_entries(stack):
        src = os.path.join(root, rel)
        if not os.path.exists(src):
            if mandatory:
                raise MissingComposeFileError(f"{rel} not found", path=src)
            log.info("%s not found, skipping...", rel)
            continue
        _copy(src, os.path.join(dest_dir, rel))
        copied.append(rel)
        log.info("%s backed up", rel)
    return copied


def restore_configs(snapshot_dir: str, root: str, stack: StackFileConfig) -> List[str]:
    """
    Copy configuration artifacts from a snapshot over the live ones.
    Directories (the settings dir) are replaced wholesale, files overwritten.
    """
    restored: List[str] = []
    for rel, _mandatory in config_entries(stack):
        src = os.path.join(snapshot_dir, rel)
        if not os.path.exists(src):
            continue
        dst = os.path.join(root, rel)
        if os.path.isdir(src):
            if os.path.isdir(dst) and not os.path.islink(dst):
                shutil.rmtree(dst)
            elif os.path.lexists(dst):
                os.remove(dst)
        _copy(src, dst)
        restored.append(rel)
        log.info("%s restored", rel)
    return restored
