from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from searxstack.core.config.io import ReadResult, atomic_write_json, quarantine_corrupt, read_json_file
from searxstack.core.config.models import (
    BackupConfigFile,
    DeployConfigFile,
    HealthConfigFile,
    ReadinessConfigFile,
    StackConfig,
    StackFileConfig,
)
from searxstack.core.config.paths import StackFsPaths
from searxstack.core.errors import ConfigError

# section name -> model; stored as config/<section>.json
SECTIONS: Dict[str, type[BaseModel]] = {
    "stack": StackFileConfig,
    "backup": BackupConfigFile,
    "readiness": ReadinessConfigFile,
    "deploy": DeployConfigFile,
    "health": HealthConfigFile,
}

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(environ: Mapping[str, str], name: str) -> Optional[bool]:
    raw = environ.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    return str(raw).strip().lower() in _TRUTHY


class ConfigManager:
    def __init__(
        self,
        *,
        fs: Optional[StackFsPaths] = None,
        logger=None,
        read_only: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.fs = fs or StackFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._environ = os.environ if environ is None else environ
        self._cfg: Optional[StackConfig] = None

    # ---------- public API ----------
    def load_all(self) -> StackConfig:
        files = self._load_raw_files()
        if not self.read_only:
            self._ensure_defaults(files)
        self._apply_env_overrides(files)
        cfg = self._validate_all(files)
        self._cfg = cfg
        return cfg

    def get(self) -> StackConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def save_section(self, section: str, data: Dict[str, Any]) -> StackConfig:
        """Atomic write of one section file, then reload and validate the whole set."""
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        if section not in SECTIONS:
            raise ConfigError(f"Unknown config section: {section}")
        if not isinstance(data, dict):
            raise ConfigError("Config data must be an object.")
        atomic_write_json(self.fs.section_file(section), data)
        return self.load_all()

    # ---------- internals ----------
    def _load_raw_files(self) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for section in SECTIONS:
            path = self.fs.section_file(section)
            rr: ReadResult = read_json_file(path)
            if rr.ok:
                out[section] = rr.data
                continue
            if rr.error and rr.error != "missing":
                if self.logger:
                    self.logger.warning(f"Invalid config {os.path.basename(path)} ({rr.error}); using defaults")
                if not self.read_only and rr.error.startswith("corrupt_json"):
                    moved = quarantine_corrupt(path)
                    if self.logger and moved:
                        self.logger.warning(f"Corrupt config moved to {moved}")
            out[section] = {}
        return out

    def _ensure_defaults(self, files: Dict[str, Dict[str, Any]]) -> None:
        for section, model in SECTIONS.items():
            path = self.fs.section_file(section)
            if os.path.exists(path):
                continue
            defaults = model().model_dump(mode="json")
            merged = {**defaults, **(files.get(section) or {})}
            atomic_write_json(path, merged)
            files[section] = merged

    def _apply_env_overrides(self, files: Dict[str, Dict[str, Any]]) -> None:
        ci = env_flag(self._environ, "CI")
        if ci is not None:
            files.setdefault("health", {})["ci_mode"] = ci

    def _validate_all(self, files: Dict[str, Dict[str, Any]]) -> StackConfig:
        try:
            return StackConfig.model_validate({section: files.get(section) or {} for section in SECTIONS})
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid configuration: {e.error_count()} error(s)", errors=str(e)) from e


def load_config(root: str = ".", *, logger=None, read_only: bool = False, environ: Optional[Mapping[str, str]] = None) -> ConfigManager:
    cm = ConfigManager(fs=StackFsPaths(root), logger=logger, read_only=read_only, environ=environ)
    cm.load_all()
    return cm
