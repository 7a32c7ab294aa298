from __future__ import annotations

import os

import pytest

from helpers.fakes import FakeRuntime, default_volumes
from searxstack.cli import backup as backup_cli
from searxstack.cli import deploy as deploy_cli
from searxstack.cli import health_check as health_cli
from searxstack.cli import restore as restore_cli


@pytest.fixture
def runtime():
    return FakeRuntime(volumes=default_volumes())


@pytest.fixture
def factory(runtime):
    return lambda _cfg, _root: runtime


@pytest.fixture(autouse=True)
def _no_ci(monkeypatch):
    monkeypatch.delenv("CI", raising=False)


def test_backup_cli_creates_named_snapshot(stack_root, factory):
    assert backup_cli.main(["nightly", "--root", stack_root], runtime_factory=factory) == 0
    assert os.path.isfile(os.path.join(stack_root, "backups", "nightly", "backup-info.txt"))
    assert os.path.isfile(os.path.join(stack_root, "logs", "ops.jsonl"))


def test_backup_cli_existing_name_exits_one(stack_root, factory):
    assert backup_cli.main(["nightly", "--root", stack_root], runtime_factory=factory) == 0
    assert backup_cli.main(["nightly", "--root", stack_root], runtime_factory=factory) == 1


def test_restore_cli_lists_snapshots(stack_root, factory, capsys):
    backup_cli.main(["first", "--root", stack_root], runtime_factory=factory)
    assert restore_cli.main(["--list", "--root", stack_root], runtime_factory=factory) == 0
    assert "  - first (" in capsys.readouterr().out


def test_restore_cli_list_without_backups_dir(stack_root, factory, capsys):
    assert restore_cli.main(["-l", "--root", stack_root], runtime_factory=factory) == 0
    assert capsys.readouterr().out == ""


def test_restore_cli_requires_name(stack_root, factory):
    assert restore_cli.main(["--root", stack_root], runtime_factory=factory) == 1


def test_restore_cli_declined_exits_zero(stack_root, factory, runtime):
    backup_cli.main(["first", "--root", stack_root], runtime_factory=factory)
    runtime.calls.clear()
    rc = restore_cli.main(["first", "--root", stack_root], runtime_factory=factory, confirm=lambda _p: False)
    assert rc == 0
    assert runtime.calls == []


def test_restore_cli_unknown_snapshot_exits_one(stack_root, factory):
    assert restore_cli.main(["missing", "--yes", "--root", stack_root], runtime_factory=factory) == 1


def test_deploy_parser_accepts_positional_booleans():
    args = deploy_cli.build_parser().parse_args(["true", "false"])
    assert args.force_rebuild is True and args.skip_git is False
    args = deploy_cli.build_parser().parse_args(["--skip-git"])
    assert args.skip_git_flag is True and args.force_rebuild is False
    with pytest.raises(SystemExit):
        deploy_cli.build_parser().parse_args(["maybe"])


def test_deploy_cli_skip_git_writes_deploy_log(stack_root, factory, runtime):
    assert deploy_cli.main(["false", "true", "--root", stack_root], runtime_factory=factory) == 0
    assert ("compose_up", False, False) in runtime.calls
    with open(os.path.join(stack_root, "deploy.log"), "r", encoding="utf-8") as f:
        assert "Deployment completed successfully!" in f.read()


def test_health_cli_help(capsys):
    assert health_cli.main(["help"]) == 0
    assert "Usage: searxstack-health" in capsys.readouterr().out


def test_health_cli_unknown_mode():
    assert health_cli.main(["sideways"]) == 1


def test_health_cli_quick(stack_root, factory, runtime):
    runtime.up = True
    assert health_cli.main(["quick", "--root", stack_root], runtime_factory=factory) == 0
    runtime.daemon = False
    assert health_cli.main(["-q", "--root", stack_root], runtime_factory=factory) == 1


def test_health_cli_does_not_write_config(stack_root, factory):
    health_cli.main(["--quick", "--root", stack_root], runtime_factory=factory)
    assert not os.path.exists(os.path.join(stack_root, "config"))


def test_health_parse_args_finds_mode_and_verbose():
    ns = health_cli.parse_args(["--verbose", "full", "--root", "/srv"])
    assert ns.mode == "full" and ns.verbose is True and ns.root == "/srv"
    assert health_cli.parse_args([]).mode == "full"
    assert health_cli.parse_args(["-q", "-v"]).mode == "-q"


def _hand_made_snapshot(stack_root, name="first"):
    snap = os.path.join(stack_root, "backups", name)
    os.makedirs(snap)
    with open(os.path.join(snap, "backup-info.txt"), "w", encoding="utf-8") as f:
        f.write("Backup Information\n")
    return snap


def test_restore_cli_declined_on_fresh_stack_writes_nothing(stack_root, factory):
    _hand_made_snapshot(stack_root)
    before = sorted(os.listdir(stack_root))
    rc = restore_cli.main(["first", "--root", stack_root], runtime_factory=factory, confirm=lambda _p: False)
    assert rc == 0
    assert sorted(os.listdir(stack_root)) == before
    assert not os.path.exists(os.path.join(stack_root, "config"))
    assert not os.path.exists(os.path.join(stack_root, "logs"))


def test_restore_cli_list_writes_nothing(stack_root, factory):
    _hand_made_snapshot(stack_root)
    before = sorted(os.listdir(stack_root))
    assert restore_cli.main(["--list", "--root", stack_root], runtime_factory=factory) == 0
    assert sorted(os.listdir(stack_root)) == before


def test_restore_cli_confirmed_logs_to_file(stack_root, factory):
    backup_cli.main(["first", "--root", stack_root], runtime_factory=factory)
    assert restore_cli.main(["first", "--yes", "--root", stack_root], runtime_factory=factory) == 0
    with open(os.path.join(stack_root, "logs", "searxstack.log"), "r", encoding="utf-8") as f:
        assert "Restore completed successfully!" in f.read()
