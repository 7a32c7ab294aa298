from __future__ import annotations

from searxstack.cli.backup import main

if __name__ == "__main__":
    raise SystemExit(main())
