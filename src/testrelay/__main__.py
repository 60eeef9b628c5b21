"""Allow running testrelay as a module: python -m testrelay."""

from testrelay.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
