from __future__ import annotations

from searxstack.cli.deploy import main

if __name__ == "__main__":
    raise SystemExit(main())
