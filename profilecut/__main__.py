# profilecut/__main__.py
# Package entrypoint so you can run:
#   python -m profilecut --help
#
# Examples:
#   python -m profilecut --job job.json
#   python -m profilecut --items items.csv --stock 6100 --algorithm genetic --time 10 --out out/

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
