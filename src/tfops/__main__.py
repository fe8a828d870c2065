"""Entry point for ``python -m tfops``."""

from tfops.cli import app

if __name__ == "__main__":
    app()
