"""CLI package for testrelay."""

from testrelay.cli.app import app


def main() -> int:
    """Main entry point for the CLI."""
    try:
        app()
    except SystemExit as e:
        if e.code is None:
            return 0
        return e.code if isinstance(e.code, int) else 1
    return 0


__all__ = ["app", "main"]
