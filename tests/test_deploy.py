from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime

import pytest

from helpers.fakes import FakeGitRunner, git_repo_responses
from searxstack.core.deploy.deployer import Deployer
from searxstack.core.deploy.git import GitClient
from searxstack.core.errors import GitSyncError, MissingToolError

FIXED_NOW = datetime(2024, 1, 2, 3, 4, 5)


def _git(fs, runner: FakeGitRunner) -> GitClient:
    return GitClient(work_dir=fs.root, runner=runner, which=lambda _b: "/usr/bin/git", now=lambda: FIXED_NOW)


def _deployer(backup_manager, fs, runner=None, **kw) -> Deployer:
    git = _git(fs, runner or FakeGitRunner(git_repo_responses()))
    return Deployer(backup_manager, git=git, sleep=lambda _s: None, now=lambda: FIXED_NOW, **kw)


def test_deploy_sequence_without_git(backup_manager, fake_runtime, fs):
    fake_runtime.up = True
    runner = FakeGitRunner()
    res = _deployer(backup_manager, fs, runner).run(skip_git=True)

    assert runner.calls == []
    assert res.skipped_git is True
    assert res.backup_name == "20240102-030405"
    assert os.path.isdir(os.path.join(fs.root, "backups", "20240102-030405"))

    names = fake_runtime.call_names()
    order = ["is_available", "compose_available", "archive_volume", "compose_pull", "compose_down", "compose_up", "image_prune"]
    positions = [names.index(n) for n in order]
    assert positions == sorted(positions)
    assert ("compose_up", False, False) in fake_runtime.calls


def test_force_rebuild_recreates_and_builds(backup_manager, fake_runtime, fs):
    res = _deployer(backup_manager, fs).run(force_rebuild=True, skip_git=True)
    assert res.force_rebuild is True
    assert ("compose_up", True, True) in fake_runtime.calls
    assert "compose_down" not in fake_runtime.call_names()  # was not running


def test_deploy_prunes_to_five_snapshots(backup_manager, fs):
    backups = os.path.join(fs.root, "backups")
    for i in range(7):
        path = os.path.join(backups, f"old-{i}")
        os.makedirs(path)
        os.utime(path, (1_600_000_000 + i, 1_600_000_000 + i))

    res = _deployer(backup_manager, fs).run(skip_git=True)

    assert sorted(res.removed_snapshots) == ["old-0", "old-1", "old-2"]
    assert res.kept_snapshots[0] == "20240102-030405"
    assert len([n for n in os.listdir(backups) if not n.startswith(".")]) == 5


def test_missing_docker_is_fatal_before_snapshot(backup_manager, fake_runtime, fs):
    fake_runtime.available = False
    with pytest.raises(MissingToolError):
        _deployer(backup_manager, fs).run(skip_git=True)
    assert not os.path.exists(os.path.join(fs.root, "backups", "20240102-030405"))
    assert "compose_pull" not in fake_runtime.call_names()


def test_missing_compose_plugin_is_fatal(backup_manager, fake_runtime, fs):
    fake_runtime.compose = False
    with pytest.raises(MissingToolError):
        _deployer(backup_manager, fs).run(skip_git=True)


def test_git_sync_stashes_switches_and_pulls(backup_manager, fs):
    runner = FakeGitRunner(git_repo_responses(dirty=True, branch="feature/x"))
    res = _deployer(backup_manager, fs, runner).run()

    subs = runner.subcommands()
    assert ("stash", "push", "-m", "deploy-autostash-20240102-030405") in subs
    assert ("checkout", "main") in subs
    assert ("pull", "--rebase", "--autostash", "origin", "main") in subs
    assert subs.index(("checkout", "main")) < subs.index(("pull", "--rebase", "--autostash", "origin", "main"))
    assert res.commit_short == "0123456"
    assert res.commit_subject == "Bump searxng image"
    assert res.commit_author == "Ops Bot"
    assert res.stashed_as == "deploy-autostash-20240102-030405"


def test_clean_tree_on_main_only_pulls(backup_manager, fs):
    runner = FakeGitRunner(git_repo_responses())
    _deployer(backup_manager, fs, runner).run()
    subs = runner.subcommands()
    assert not any(s[0] in {"stash", "checkout"} for s in subs)


def test_not_a_work_tree_aborts_before_runtime(backup_manager, fake_runtime, fs):
    runner = FakeGitRunner({("rev-parse", "--is-inside-work-tree"): (128, "")})
    with pytest.raises(GitSyncError):
        _deployer(backup_manager, fs, runner).run()
    assert fake_runtime.calls == []


def test_git_missing_from_path(backup_manager, fake_runtime, fs):
    git = GitClient(work_dir=fs.root, runner=FakeGitRunner(), which=lambda _b: None)
    with pytest.raises(GitSyncError):
        Deployer(backup_manager, git=git, sleep=lambda _s: None).run()


def test_summary_mentions_commit_and_backup(backup_manager, fs):
    res = _deployer(backup_manager, fs).run()
    text = "\n".join(res.summary_lines())
    assert "0123456 Bump searxng image (Ops Bot)" in text
    assert res.backup_path in text
    assert "Duration:" in text
    events = backup_manager.ops.read_all()
    assert [e["event"] for e in events] == ["backup.create", "deploy.complete"]


def _sh_git(cwd, *args):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_git_sync_leaves_untracked_stack_state_alone(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for key in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(key, "Ops Bot")
    for key in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(key, "ops@example.invalid")

    work = tmp_path / "stack"
    work.mkdir()
    _sh_git(work, "init")
    (work / "docker-compose.yaml").write_text("services: {}\n", encoding="utf-8")
    _sh_git(work, "add", "docker-compose.yaml")
    _sh_git(work, "commit", "-m", "Initial stack")
    _sh_git(work, "branch", "-M", "main")
    _sh_git(tmp_path, "clone", "--bare", str(work), str(tmp_path / "remote.git"))
    _sh_git(work, "remote", "add", "origin", str(tmp_path / "remote.git"))

    snapshot = work / "backups" / "20240101-000000"
    snapshot.mkdir(parents=True)
    (snapshot / "redis-data.tar.gz").write_bytes(b"archive")
    (work / "backups" / ".lock").write_text("123\n", encoding="utf-8")
    (work / "logs").mkdir()
    (work / "logs" / "deploy.log").write_text("started\n", encoding="utf-8")
    (work / "docker-compose.yaml").write_text("services: {edited: {}}\n", encoding="utf-8")

    res = GitClient(work_dir=str(work), now=lambda: FIXED_NOW).sync()

    assert res.stash_message == "deploy-autostash-20240102-030405"
    assert res.commit.subject == "Initial stack"
    assert (snapshot / "redis-data.tar.gz").read_bytes() == b"archive"
    assert (work / "backups" / ".lock").exists()
    assert (work / "logs" / "deploy.log").read_text(encoding="utf-8") == "started\n"
    assert (work / "docker-compose.yaml").read_text(encoding="utf-8") == "services: {}\n"


def test_required_tools_come_from_deploy_config(backup_manager, fake_runtime, fs):
    fake_runtime.compose = False
    backup_manager.cfg.deploy.required_tools = ["docker"]
    _deployer(backup_manager, fs).run(skip_git=True)
    assert "compose_available" not in fake_runtime.call_names()
    assert "is_available" in fake_runtime.call_names()
