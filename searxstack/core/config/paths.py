from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class StackFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def logs_dir(self) -> str:
        return os.path.join(self.root, "logs")

    @property
    def ops_log(self) -> str:
        return os.path.join(self.logs_dir, "ops.jsonl")

    def section_file(self, section: str) -> str:
        return os.path.join(self.config_dir, f"{section}.json")

    def resolve(self, rel: str) -> str:
        """Resolve a stack-relative path; absolute paths pass through."""
        if os.path.isabs(rel):
            return rel
        return os.path.join(self.root, rel)
