from __future__ import annotations

import logging
import os

import pytest

from helpers.fakes import FakeRuntime, default_volumes
from searxstack.core.backup.api import BackupManager
from searxstack.core.config.manager import ConfigManager
from searxstack.core.config.paths import StackFsPaths
from searxstack.core.ops_log import OpsLogger


def _write(path: str, text: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


@pytest.fixture(autouse=True)
def _reset_searxstack_logger():
    yield
    logger = logging.getLogger("searxstack")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def stack_root(tmp_path):
    """
    A stack directory as operators keep it: compose file, Caddyfile, settings dir and .env.
    """
    root = str(tmp_path)
    _write(os.path.join(root, "docker-compose.yaml"), "services:\n  searxng:\n    image: searxng/searxng:latest\n")
    _write(os.path.join(root, "Caddyfile"), "search.example.org {\n  reverse_proxy searxng:8080\n}\n")
    _write(os.path.join(root, "searxng", "settings.yml"), "server:\n  secret_key: original\n")
    _write(os.path.join(root, ".env"), "SEARXNG_HOSTNAME=search.example.org\n")
    return root


@pytest.fixture
def fs(stack_root):
    return StackFsPaths(root=stack_root)


@pytest.fixture
def stack_config(fs):
    cm = ConfigManager(fs=fs, logger=None, read_only=False, environ={})
    return cm.load_all()


@pytest.fixture
def fake_runtime():
    return FakeRuntime(volumes=default_volumes())


@pytest.fixture
def backup_manager(fs, stack_config, fake_runtime):
    return BackupManager(cfg=stack_config, fs=fs, runtime=fake_runtime, ops=OpsLogger(path=fs.ops_log))
