from searxstack.core.health.checks import HealthChecker, scan_log_errors
from searxstack.core.health.models import CheckResult, CheckStatus, HealthReport
from searxstack.core.health.runner import HealthRunner

__all__ = ["CheckResult", "CheckStatus", "HealthChecker", "HealthReport", "HealthRunner", "scan_log_errors"]
