from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

INFO_FILE = "backup-info.txt"


class SnapshotMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    created: datetime = Field(default_factory=lambda: datetime.now().astimezone())
    created_by: str = "unknown"
    host: str = "unknown"

    compose_status: str = ""
    images: str = ""
    volumes: str = ""

    archived_volumes: List[str] = Field(default_factory=list)
    skipped_volumes: List[str] = Field(default_factory=list)
    copied_files: List[str] = Field(default_factory=list)


class SnapshotResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    path: str
    size_bytes: int = 0
    archived_volumes: List[str] = Field(default_factory=list)
    skipped_volumes: List[str] = Field(default_factory=list)
    copied_files: List[str] = Field(default_factory=list)


class SnapshotSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    path: str
    created: str = "Unknown"
    mtime: float = 0.0


class RestoreResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    cancelled: bool = False
    stopped_stack: bool = False
    restored_files: List[str] = Field(default_factory=list)
    restored_volumes: List[str] = Field(default_factory=list)
    attempts: Optional[int] = None


class RetentionSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    removed: List[str] = Field(default_factory=list)
    kept: List[str] = Field(default_factory=list)
