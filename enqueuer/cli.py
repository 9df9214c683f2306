"""Command-line entry point for the overseer tools."""

import argparse
import asyncio
import sys
from typing import List, Optional

from agent.core.logger import setup_logger
from agent.protocols import get_protocol_registry
from shared.config import EnqueueConfig, load_enqueue_config, parse_duration
from .pipeline import EnqueuePipeline, create_redis_client


def _duration(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser(defaults: EnqueueConfig) -> argparse.ArgumentParser:
    """Build the argument parser; flag defaults come from the layered config."""
    parser = argparse.ArgumentParser(prog="overseer", description="Network health-check tools")
    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    enqueue = subparsers.add_parser(
        "enqueue",
        help="Enqueue a parsed configuration file",
        description="Add the tests from a parsed configuration file to a central redis queue."
    )
    enqueue.add_argument("--redis-db", type=int, default=defaults.redis_db,
                         help="Specify the database-number for redis.")
    enqueue.add_argument("--redis-host", type=str, default=defaults.redis_host,
                         help="Specify the address of the redis queue.")
    enqueue.add_argument("--redis-pass", type=str, default=defaults.redis_password,
                         help="Specify the password for the redis queue.")
    enqueue.add_argument("--redis-socket", type=str, default=defaults.redis_socket,
                         help="If set, will be used for the redis connections.")
    enqueue.add_argument("--redis-timeout", type=_duration, default=defaults.redis_timeout,
                         help="Redis connection timeout, e.g. 5s or 500ms.")
    enqueue.add_argument("files", nargs="*", metavar="FILE",
                         help="Test-definition files, or - for standard input.")

    examples = subparsers.add_parser("examples", help="Show example usage of each protocol tester")
    examples.add_argument("protocols", nargs="*", metavar="PROTOCOL",
                          help="Limit output to these protocols.")
    return parser


def show_examples(protocols: List[str]) -> int:
    """Print the usage text of the requested (or all) protocol testers."""
    registry = get_protocol_registry()
    status = 0
    for name in protocols or registry.list_protocols():
        tester = registry.lookup(name)
        if tester is None:
            print(f"Unknown protocol: {name}", file=sys.stderr)
            status = 1
            continue
        print(tester.example())
    return status


async def run_enqueue(config: EnqueueConfig, files: List[str]) -> int:
    """Run the enqueue pipeline against the configured queue."""
    client = create_redis_client(config)
    try:
        return await EnqueuePipeline(client).run(files)
    finally:
        await client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the selected command."""
    # Configuration-file warnings are logged before flags are known.
    setup_logger(level="INFO")
    defaults = load_enqueue_config()

    args = build_parser(defaults).parse_args(argv)
    setup_logger(level=args.log_level)

    if args.command == "examples":
        return show_examples(args.protocols)

    config = defaults.model_copy(update={
        "redis_host": args.redis_host,
        "redis_socket": args.redis_socket,
        "redis_password": args.redis_pass,
        "redis_db": args.redis_db,
        "redis_timeout": args.redis_timeout,
    })
    return asyncio.run(run_enqueue(config, args.files))


def run() -> None:
    sys.exit(main())
