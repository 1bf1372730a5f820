"""Module entrypoint for `python -m demtiles`."""

from __future__ import annotations

from demtiles.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
