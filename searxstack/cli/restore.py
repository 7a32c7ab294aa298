from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from searxstack.cli.common import add_root_argument, open_stack, run_guarded
from searxstack.core.backup.restorer import Restorer, is_affirmative
from searxstack.core.logger import setup_logging

log = logging.getLogger("searxstack.restore")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="searxstack-restore", description="Restore the SearXNG stack from a backup")
    ap.add_argument("name", nargs="?", default=None, help="Backup directory name under backups/")
    ap.add_argument("-l", "--list", action="store_true", help="List available backups and exit")
    ap.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    add_root_argument(ap)
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def ask(prompt: str) -> bool:
    try:
        return is_affirmative(input(prompt))
    except EOFError:
        return False


def main(argv: Optional[List[str]] = None, *, runtime_factory=None, confirm=None) -> int:  # noqa: ANN001
    ap = build_parser()
    args = ap.parse_args(argv)
    if not args.list and not args.name:
        ap.print_usage()
        log.error("Please provide a backup name. Usage: searxstack-restore <backup_name>")
        return 1

    def _run() -> int:
        # nothing is written under the stack root until the restore is confirmed
        ctx = open_stack(args.root, verbose=args.verbose, read_only=True, runtime_factory=runtime_factory)
        mgr = ctx.backup_manager()
        if args.list:
            snapshots = mgr.list_snapshots()
            if not os.path.isdir(mgr.backups_dir):
                log.info("No backups directory found")
                return 0
            log.info("Available backups:")
            for s in snapshots:
                print(f"  - {s.name} ({s.created})")
            return 0
        answer = (lambda _prompt: True) if args.yes else (confirm or ask)

        def confirmed(prompt: str) -> bool:
            if not answer(prompt):
                return False
            setup_logging(ctx.fs.logs_dir, verbose=args.verbose)
            return True

        Restorer(mgr).restore(args.name, confirm=confirmed)
        return 0

    return run_guarded(_run)


if __name__ == "__main__":
    raise SystemExit(main())
