from __future__ import annotations

import argparse
from typing import List, Optional

from searxstack.cli.common import add_root_argument, open_stack, run_guarded


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="searxstack-backup", description="Snapshot SearXNG stack volumes and configuration")
    ap.add_argument("name", nargs="?", default=None, help="Backup name (default: manual-YYYYmmdd-HHMMSS)")
    add_root_argument(ap)
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def main(argv: Optional[List[str]] = None, *, runtime_factory=None) -> int:  # noqa: ANN001
    args = build_parser().parse_args(argv)

    def _run() -> int:
        ctx = open_stack(args.root, verbose=args.verbose, runtime_factory=runtime_factory)
        ctx.backup_manager().create_snapshot(args.name)
        return 0

    return run_guarded(_run)


if __name__ == "__main__":
    raise SystemExit(main())
