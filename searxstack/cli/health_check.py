from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from searxstack.cli.common import add_root_argument, open_stack, run_guarded
from searxstack.core.health.checks import HealthChecker
from searxstack.core.health.runner import HealthRunner

QUICK = {"quick", "-q", "--quick"}
FULL = {"full", "-f", "--full", ""}
HELP = {"help", "-h", "--help"}

USAGE = """Usage: searxstack-health [quick|full|help] [--verbose]

Options:
  quick, -q, --quick    Run quick health check (containers only)
  full, -f, --full      Run comprehensive health check (default)
  --verbose, -v         Show detailed error logs
  help, -h, --help      Show this help message
  --root DIR            Stack directory (default: current directory)

Environment Variables:
  CI=true              Run in CI mode (warnings don't fail)
"""


def parse_args(argv: List[str]) -> argparse.Namespace:
    """
    The mode is the first argument that is not --verbose/-v or --root; mode
    flags such as -q are treated as mode words, not argparse options.
    """
    ap = argparse.ArgumentParser(prog="searxstack-health", add_help=False)
    add_root_argument(ap)
    ap.add_argument("-v", "--verbose", action="store_true")
    ns, rest = ap.parse_known_args(argv)
    ns.mode = rest[0] if rest else "full"
    ns.extra = rest[1:]
    return ns


def main(argv: Optional[List[str]] = None, *, runtime_factory=None, checker_factory=None) -> int:  # noqa: ANN001
    args = parse_args(list(sys.argv[1:] if argv is None else argv))
    if args.mode in HELP:
        print(USAGE, end="")
        return 0
    if args.mode not in QUICK and args.mode not in FULL:
        print(f"[ERROR] Unknown option: {args.mode}", file=sys.stderr)
        print("Use 'searxstack-health help' for usage information")
        return 1

    def _run() -> int:
        ctx = open_stack(args.root, verbose=args.verbose, read_only=True, runtime_factory=runtime_factory)
        if checker_factory is None:
            checker = HealthChecker(
                ctx.cfg.health, ctx.runtime, root=ctx.fs.root, project=ctx.cfg.stack.project, verbose=args.verbose
            )
        else:
            checker = checker_factory(ctx.cfg.health, ctx.runtime, ctx.fs.root, args.verbose)
        runner = HealthRunner(checker, ci_mode=ctx.cfg.health.ci_mode)
        report = runner.run_quick() if args.mode in QUICK else runner.run_full()
        return report.exit_code

    return run_guarded(_run)


if __name__ == "__main__":
    raise SystemExit(main())
