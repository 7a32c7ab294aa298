from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class OpsError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.user_message)

    def __str__(self) -> str:
        return self.user_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": {str(k): (v if isinstance(v, (str, int, float, bool)) or v is None else str(v)) for k, v in (self.context or {}).items()},
        }


# ---- Configuration / usage ----
class ConfigError(OpsError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class ValidationError(OpsError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


# ---- Snapshots ----
class SnapshotExistsError(OpsError):
    def __init__(self, user_message: str = "Backup directory already exists.", **ctx: Any):
        super().__init__("snapshot_exists", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class SnapshotNotFoundError(OpsError):
    def __init__(self, user_message: str = "Backup directory not found.", **ctx: Any):
        super().__init__("snapshot_not_found", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class MissingComposeFileError(OpsError):
    def __init__(self, user_message: str = "docker-compose.yaml not found.", **ctx: Any):
        super().__init__("compose_file_missing", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class LockHeldError(OpsError):
    def __init__(self, user_message: str = "Another backup, restore or deploy is already running.", **ctx: Any):
        super().__init__("lock_held", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


# ---- External tools ----
class MissingToolError(OpsError):
    def __init__(self, user_message: str = "Required tool is not installed.", **ctx: Any):
        super().__init__("tool_missing", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class RuntimeCommandError(OpsError):
    def __init__(self, user_message: str = "Container runtime command failed.", **ctx: Any):
        super().__init__("runtime_command_failed", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class GitSyncError(OpsError):
    def __init__(self, user_message: str = "Source sync failed.", **ctx: Any):
        super().__init__("git_sync_failed", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)


class ReadinessTimeoutError(OpsError):
    def __init__(self, user_message: str = "Services failed to start properly.", **ctx: Any):
        super().__init__("readiness_timeout", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
