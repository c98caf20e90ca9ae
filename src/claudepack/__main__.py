"""Allow `python -m claudepack` to invoke the CLI."""

from .cli import app


def main() -> None:
    app(prog_name="claudepack")


if __name__ == "__main__":  # pragma: no cover - manual execution path
    main()
