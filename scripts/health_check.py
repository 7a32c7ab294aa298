from __future__ import annotations

from searxstack.cli.health_check import main

if __name__ == "__main__":
    raise SystemExit(main())
