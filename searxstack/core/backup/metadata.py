from __future__ import annotations

import getpass
import os
import socket
from typing import Optional

from searxstack.core.backup.models import INFO_FILE, SnapshotMetadata


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def render_info(meta: SnapshotMetadata) -> str:
    lines = [
        "Backup Information",
        "==================",
        f"Backup Name: {meta.name}",
        f"Created: {meta.created.strftime('%a %b %d %H:%M:%S %Z %Y')}",
        f"Created By: {meta.created_by}",
        f"Host: {meta.host}",
        "",
        "Archived Volumes:",
        *([f"  {v}" for v in meta.archived_volumes] or ["  (none)"]),
        "Skipped Volumes:",
        *([f"  {v}" for v in meta.skipped_volumes] or ["  (none)"]),
        "Configuration Files:",
        *([f"  {f}" for f in meta.copied_files] or ["  (none)"]),
        "",
        "Docker Compose Status:",
        meta.compose_status.rstrip(),
        "",
        "Docker Images:",
        meta.images.rstrip(),
        "",
        "Docker Volumes:",
        meta.volumes.rstrip(),
    ]
    return "\n".join(lines) + "\n"


def write_info(snapshot_dir: str, meta: SnapshotMetadata) -> str:
    path = os.path.join(snapshot_dir, INFO_FILE)
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_info(meta))
    return path


def read_info(snapshot_dir: str) -> Optional[str]:
    path = os.path.join(snapshot_dir, INFO_FILE)
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def read_created(snapshot_dir: str) -> str:
    """`Created:` value from backup-info.txt, or "Unknown"."""
    text = read_info(snapshot_dir)
    if not text:
        return "Unknown"
    for line in text.splitlines():
        if line.startswith("Created:"):
            value = line.split(":", 1)[1].strip()
            return value or "Unknown"
    return "Unknown"


def host_name() -> str:
    return socket.gethostname() or "unknown"
