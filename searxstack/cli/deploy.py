from __future__ import annotations

import argparse
from typing import List, Optional

from searxstack.cli.common import add_root_argument, open_stack, parse_bool, run_guarded
from searxstack.core.deploy.deployer import Deployer
from searxstack.core.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="searxstack-deploy",
        description="Sync source, snapshot, pull images and recreate the SearXNG stack",
    )
    ap.add_argument("force_rebuild", nargs="?", type=parse_bool, default=False, help="true|false (default false)")
    ap.add_argument("skip_git", nargs="?", type=parse_bool, default=False, help="true|false (default false)")
    ap.add_argument("--force-rebuild", dest="force_rebuild_flag", action="store_true", help="Recreate containers and rebuild images")
    ap.add_argument("--skip-git", dest="skip_git_flag", action="store_true", help="Do not sync from the git remote")
    add_root_argument(ap)
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def main(argv: Optional[List[str]] = None, *, runtime_factory=None, git=None) -> int:  # noqa: ANN001
    args = build_parser().parse_args(argv)
    force_rebuild = bool(args.force_rebuild or args.force_rebuild_flag)
    skip_git = bool(args.skip_git or args.skip_git_flag)

    def _run() -> int:
        ctx = open_stack(args.root, verbose=args.verbose, runtime_factory=runtime_factory)
        setup_logging(ctx.fs.logs_dir, log_file=ctx.fs.resolve(ctx.cfg.deploy.log_file), verbose=args.verbose)
        Deployer(ctx.backup_manager(), git=git).run(force_rebuild=force_rebuild, skip_git=skip_git)
        return 0

    return run_guarded(_run)


if __name__ == "__main__":
    raise SystemExit(main())
