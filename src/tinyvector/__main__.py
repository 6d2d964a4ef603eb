"""Entry point for `python3 -m tinyvector`."""

from tinyvector.cli import app


def main() -> None:
    """CLI entry point for the `tinyvector` script."""
    app()


if __name__ == "__main__":
    main()
