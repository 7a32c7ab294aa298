from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, List

import psutil

from searxstack.core.backup.api import human_size
from searxstack.core.errors import OpsError
from searxstack.core.health.checks import HealthChecker
from searxstack.core.health.models import HealthReport

log = logging.getLogger("searxstack.health")


def format_uptime(seconds: float) -> str:
    """`uptime -p` style: up 3 days, 4 hours, 12 minutes."""
    minutes = int(seconds // 60)
    days, rem = divmod(minutes, 24 * 60)
    hours, mins = divmod(rem, 60)
    parts = []
    if days:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if mins or not parts:
        parts.append(f"{mins} minute{'s' if mins != 1 else ''}")
    return "up " + ", ".join(parts)


class HealthRunner:
    def __init__(
        self,
        checker: HealthChecker,
        *,
        ci_mode: bool = False,
        boot_time: Callable[[], float] = psutil.boot_time,
        now: Callable[[], float] = time.time,
    ):
        self.checker = checker
        self.runtime = checker.runtime
        self.ci_mode = ci_mode
        self._boot_time = boot_time
        self._now = now

    def run_quick(self) -> HealthReport:
        log.info("Running quick health check...")
        c = self.checker
        results = [c.run("daemon", c.check_daemon, critical=True)]
        if not results[0].failed:
            results.append(c.run("containers", c.check_containers, critical=True))
        report = HealthReport(mode="quick", ci_mode=self.ci_mode, results=results)
        if report.exit_code == 0:
            log.info("%s", report.verdict())
            log.info("%s", self.runtime.compose_ps_text().rstrip())
        else:
            log.error("%s", report.verdict())
        return report

    def run_full(self) -> HealthReport:
        log.info("Starting comprehensive health check...")
        if self.ci_mode:
            log.info("Running in CI mode - warnings won't cause failure")
        for line in self.system_info_lines():
            log.info("%s", line)

        c = self.checker
        results = [
            c.run("daemon", c.check_daemon, critical=True),
            c.run("containers", c.check_containers, critical=True),
            c.run("volumes", c.check_volumes, critical=False),
            c.run("services", lambda: c.check_services(ci_mode=self.ci_mode), critical=False),
            c.run("disk", c.check_disk, critical=False),
            c.run("memory", c.check_memory, critical=False),
            c.run("logs", c.check_logs, critical=False),
        ]
        report = HealthReport(mode="full", ci_mode=self.ci_mode, results=results)
        for line in report.summary_lines():
            log.info("%s", line)
        if report.exit_code == 2:
            log.error("%s", report.verdict())
        elif report.warnings and not self.ci_mode:
            log.warning("%s", report.verdict())
        else:
            log.info("%s", report.verdict())
        return report

    def system_info_lines(self) -> List[str]:
        lines = ["System Information:", "===================="]
        lines.append(f"Date: {datetime.now().astimezone().strftime('%a %b %d %H:%M:%S %Z %Y')}")
        lines.append(f"Uptime: {format_uptime(self._now() - self._boot_time())}")
        try:
            versions = self.runtime.version_info()
            docker, compose = versions.docker, versions.compose
        except OpsError:
            docker = compose = None
        lines.append(f"Docker version: {docker or 'not available'}")
        lines.append(f"Docker Compose version: {compose or 'not available'}")
        lines.append("")
        lines.append("Container Status:")
        lines.append(self.runtime.compose_ps_text().rstrip())
        lines.append("")
        lines.append("Resource Usage:")
        vm = self.checker.virtual_memory()
        lines.append(f"Memory: {human_size(vm.total - vm.available)} used of {human_size(vm.total)} ({vm.percent:.0f}%)")
        du = self.checker.disk_usage(self.checker.root)
        lines.append(f"Disk: {human_size(du.used)} used of {human_size(du.total)} ({du.percent:.0f}%)")
        return lines
