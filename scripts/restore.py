from __future__ import annotations

from searxstack.cli.restore import main

if __name__ == "__main__":
    raise SystemExit(main())
