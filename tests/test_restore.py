from __future__ import annotations

import os

import pytest

from helpers.fakes import FakeClock
from searxstack.core.backup.restorer import Restorer, is_affirmative
from searxstack.core.errors import ReadinessTimeoutError, SnapshotNotFoundError
from searxstack.core.readiness import RetryPolicy


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


@pytest.fixture
def snapshot(backup_manager, fake_runtime):
    res = backup_manager.create_snapshot("known-good")
    fake_runtime.calls.clear()
    return res


def test_declined_restore_touches_nothing(backup_manager, fake_runtime, fs, snapshot):
    settings = os.path.join(fs.root, "searxng", "settings.yml")
    _write(settings, "server:\n  secret_key: changed\n")
    prompts = []

    res = Restorer(backup_manager).restore("known-good", confirm=lambda p: prompts.append(p) or False)

    assert res.cancelled is True
    assert len(prompts) == 1
    assert fake_runtime.calls == []
    assert "changed" in _read(settings)


def test_restore_replaces_config_and_volume_data(backup_manager, fake_runtime, fs, snapshot):
    settings_dir = os.path.join(fs.root, "searxng")
    _write(os.path.join(settings_dir, "settings.yml"), "server:\n  secret_key: changed\n")
    _write(os.path.join(settings_dir, "stray.yml"), "x: 1\n")
    _write(os.path.join(fs.root, "Caddyfile"), "broken\n")
    fake_runtime.volumes["searxng_redis-data"] = {"dump.rdb": b"CORRUPT"}
    fake_runtime.up = True

    clock = FakeClock()
    res = Restorer(backup_manager, sleep=clock.sleep).restore("known-good", confirm=lambda _p: True)

    assert res.cancelled is False
    assert res.stopped_stack is True
    assert res.attempts == 1
    assert "original" in _read(os.path.join(settings_dir, "settings.yml"))
    assert not os.path.exists(os.path.join(settings_dir, "stray.yml"))
    assert "reverse_proxy" in _read(os.path.join(fs.root, "Caddyfile"))
    assert set(res.restored_files) == {"searxng", "Caddyfile", "docker-compose.yaml", ".env"}
    assert fake_runtime.volumes["searxng_redis-data"] == {"dump.rdb": b"REDIS0011"}
    assert len(res.restored_volumes) == 4

    names = fake_runtime.call_names()
    assert names.index("compose_down") < names.index("remove_volume") < names.index("create_volume")
    assert names.index("extract_volume") < names.index("compose_up")
    assert clock.sleeps == []


def test_restore_only_volumes_present_in_snapshot(backup_manager, fake_runtime, fs, snapshot):
    os.remove(os.path.join(snapshot.path, "caddy-data.tar.gz"))
    res = Restorer(backup_manager, sleep=lambda _s: None).restore("known-good", confirm=lambda _p: True)
    assert "searxng_caddy-data" not in res.restored_volumes
    assert ("remove_volume", "searxng_caddy-data") not in fake_runtime.calls


def test_stack_not_running_is_not_stopped(backup_manager, fake_runtime, snapshot):
    fake_runtime.up = False
    res = Restorer(backup_manager, sleep=lambda _s: None).restore("known-good", confirm=lambda _p: True)
    assert res.stopped_stack is False
    assert "compose_down" not in fake_runtime.call_names()


def test_restore_waits_until_ready(backup_manager, fake_runtime, snapshot):
    fake_runtime.ready_after = 3
    clock = FakeClock()
    res = Restorer(backup_manager, sleep=clock.sleep).restore("known-good", confirm=lambda _p: True)
    assert res.attempts == 3
    assert clock.sleeps == [10.0, 10.0]


def test_readiness_exhaustion_is_fatal(backup_manager, fake_runtime, snapshot):
    fake_runtime.ready_after = 1_000
    policy = RetryPolicy(max_attempts=3, interval_seconds=10)
    r = Restorer(backup_manager, policy=policy, sleep=lambda _s: None)
    with pytest.raises(ReadinessTimeoutError):
        r.restore("known-good", confirm=lambda _p: True)
    events = backup_manager.ops.read_all()
    assert events[-1]["event"] == "restore.apply"
    assert events[-1]["outcome"] == "failed"


def test_unknown_snapshot(backup_manager):
    with pytest.raises(SnapshotNotFoundError):
        Restorer(backup_manager).restore("does-not-exist", confirm=lambda _p: True)


@pytest.mark.parametrize(
    "answer,expected",
    [("y", True), ("Y", True), ("yes", True), ("", False), ("n", False), ("N", False), (None, False), ("  ", False)],
)
def test_confirmation_answers(answer, expected):
    assert is_affirmative(answer) is expected
