from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

FULL_CHECK_COUNT = 7


class CheckStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"  # passed, with notes (minor log errors, issues ignored in CI)
    FAILED = "FAILED"


class CheckResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    status: CheckStatus
    critical: bool = False
    message: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return self.status == CheckStatus.FAILED


class HealthReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: str = "full"  # full|quick
    ci_mode: bool = False
    results: List[CheckResult] = Field(default_factory=list)

    @property
    def total_checks(self) -> int:
        return FULL_CHECK_COUNT if self.mode == "full" else len(self.results)

    @property
    def critical_failures(self) -> int:
        return sum(1 for r in self.results if r.failed and r.critical)

    @property
    def warnings(self) -> int:
        return sum(1 for r in self.results if r.failed and not r.critical)

    @property
    def passed(self) -> int:
        return self.total_checks - self.critical_failures - self.warnings

    @property
    def exit_code(self) -> int:
        if self.mode == "quick":
            return 0 if not any(r.failed for r in self.results) else 1
        if self.critical_failures:
            return 2
        if self.warnings:
            return 0 if self.ci_mode else 1
        return 0

    def verdict(self) -> str:
        if self.mode == "quick":
            return "Quick health check passed" if self.exit_code == 0 else "Quick health check failed"
        if self.critical_failures:
            return "Critical health check failures detected"
        if self.warnings:
            if self.ci_mode:
                return "Health check passed with warnings (CI mode)"
            return "Health check passed but with warnings"
        return "All health checks passed!"

    def summary_lines(self) -> List[str]:
        return [
            "Health Check Summary:",
            "=====================",
            f"Checks passed: {self.passed}/{self.total_checks}",
            f"Critical failures: {self.critical_failures}",
            f"Warnings: {self.warnings}",
        ]
