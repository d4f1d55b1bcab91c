"""Entry point for ``python -m stackbuild``."""

from stackbuild.cli import app

if __name__ == "__main__":
    app()
