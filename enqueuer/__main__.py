"""Command-line entry point: ``python -m enqueuer enqueue FILE...``."""

from enqueuer.cli import run

if __name__ == "__main__":
    run()
