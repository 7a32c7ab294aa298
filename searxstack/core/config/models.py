from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VolumeSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    archive: str
    label: str = ""

    @field_validator("archive")
    @classmethod
    def _archive_is_file_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v.startswith("."):
            raise ValueError("archive must be a plain file name")
        return v


def default_volumes() -> List[VolumeSpec]:
    return [
        VolumeSpec(name="searxng_caddy-data", archive="caddy-data.tar.gz", label="Caddy data"),
        VolumeSpec(name="searxng_redis-data", archive="redis-data.tar.gz", label="Redis data"),
        VolumeSpec(name="searxng_searxng-data", archive="searxng-data.tar.gz", label="SearXNG data"),
        VolumeSpec(name="searxng_caddy-config", archive="caddy-config.tar.gz", label="Caddy config"),
    ]


class StackFileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    project: str = "searxng"
    compose_file: str = "docker-compose.yaml"
    proxy_config: str = "Caddyfile"
    env_file: str = ".env"
    settings_dir: str = "searxng"
    backups_dir: str = "backups"
    helper_image: str = "alpine"
    docker_bin: str = "docker"
    command_timeout_seconds: float = Field(default=600.0, gt=0)


class BackupConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    volumes: List[VolumeSpec] = Field(default_factory=default_volumes)
    keep_last: int = Field(default=5, ge=1)
    default_name_prefix: str = "manual"
    image_filters: List[str] = Field(default_factory=lambda: ["reference=*searxng*", "reference=*caddy*", "reference=*valkey*"])
    volume_filter: str = "name=searxng_*"


class ReadinessConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    max_attempts: int = Field(default=30, ge=1)
    interval_seconds: float = Field(default=10.0, ge=0)
    backoff: Literal["fixed", "exponential"] = "fixed"
    backoff_factor: float = Field(default=2.0, ge=1.0)
    max_interval_seconds: float = Field(default=60.0, ge=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)


class DeployConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    main_branch: str = "main"
    remote: str = "origin"
    log_file: str = "deploy.log"
    git_bin: str = "git"
    required_tools: List[Literal["docker", "compose"]] = Field(default_factory=lambda: ["docker", "compose"])


class HealthConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    containers: List[str] = Field(default_factory=lambda: ["caddy", "redis", "searxng"])
    volumes: List[str] = Field(
        default_factory=lambda: ["searxng_caddy-data", "searxng_caddy-config", "searxng_redis-data", "searxng_searxng-data"]
    )
    app_url: str = "http://localhost:8080"
    http_timeout_seconds: float = Field(default=5.0, gt=0)
    cache_container: str = "redis"
    cache_ping_command: List[str] = Field(default_factory=lambda: ["redis-cli", "ping"])
    proxy_ports: List[int] = Field(default_factory=lambda: [80, 443])
    disk_threshold_percent: float = Field(default=90.0, gt=0, le=100)
    memory_threshold_percent: float = Field(default=90.0, gt=0, le=100)
    log_since: str = "1h"
    log_error_pattern: str = r"fatal|critical|panic|out of memory|connection refused|bind.*failed"
    log_benign_pattern: str = r"starting|started|listening|ready"
    log_verbose_pattern: str = r"error|fail|exception"
    log_error_threshold: int = Field(default=3, ge=0)
    ci_mode: bool = False


class StackConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    stack: StackFileConfig
    backup: BackupConfigFile
    readiness: ReadinessConfigFile
    deploy: DeployConfigFile
    health: HealthConfigFile
