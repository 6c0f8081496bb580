#!/usr/bin/env python3
"""
Quote Digest - random approved quotes and a weekly email digest.

Command-line entry point:
  - Serve the web surface with the weekly scheduler and digest worker
  - Run only the scheduler and worker (durable queue deployments)
  - Trigger a digest run now
  - Print a random approved quote

Usage:
    python main.py --serve              # Web + scheduler + worker
    python main.py --worker             # Scheduler + worker, no web
    python main.py --send-now           # Enqueue a digest for every subscriber
    python main.py --random-quote       # Print one approved quote
    python main.py --show-config        # Show configuration and exit

Examples:
    # Local development (in-memory store, mock mail, in-process queue)
    python main.py --serve --verbose

    # Production worker against Redis
    DURABLE_QUEUE_ENABLED=true python main.py --worker
"""

import argparse
import logging
import signal
import sys
import threading

from quotedigest import __version__
from quotedigest.config import (
    Settings,
    print_config_summary,
    validate_config,
)
from quotedigest.engine import QuoteDigestEngine
from quotedigest.errors import NoSubscribers, NotFound, QuoteDigestError
from quotedigest.jobs import InProcessJobQueue
from quotedigest.logging_setup import configure_logging

logger = logging.getLogger("quotedigest.cli")

# Seconds --send-now waits for in-process jobs to finish
SEND_NOW_TIMEOUT = 300


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="quote-digest",
        description="Serve quotes and deliver the weekly quote digest.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --serve                   Web surface, weekly scheduler and worker
  %(prog)s --serve --port 8080       Serve on another port
  %(prog)s --worker                  Scheduler and worker only
  %(prog)s --worker --no-schedule    Worker only (another process schedules)
  %(prog)s --send-now                Send this week's digest now
  %(prog)s --random-quote            Print one approved quote
        """,
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Run the web surface with the scheduler and digest worker",
    )
    mode.add_argument(
        "--worker",
        action="store_true",
        help="Run the scheduler and digest worker without the web surface",
    )
    mode.add_argument(
        "--send-now",
        action="store_true",
        help="Enqueue one digest job per active subscriber and exit",
    )
    mode.add_argument(
        "--random-quote",
        action="store_true",
        help="Print one random approved quote and exit",
    )
    mode.add_argument(
        "--show-config",
        action="store_true",
        help="Show current configuration and exit",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        metavar="PORT",
        help="Port for --serve (default: PORT from environment, 1339)",
    )

    parser.add_argument(
        "--no-schedule",
        action="store_true",
        help="Do not start the weekly cron trigger",
    )

    # Output options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only show errors",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def show_config(settings: Settings) -> None:
    """Display current configuration."""
    print("=" * 60)
    print("Quote Digest Configuration")
    print("=" * 60)
    print_config_summary(settings)

    errors = validate_config(settings)
    if errors:
        print("\nConfiguration warnings:")
        for error in errors:
            print(f"  ⚠️  {error}")
    else:
        print("\n✓ Configuration valid")
    print("=" * 60)


def send_now(engine: QuoteDigestEngine) -> int:
    """Trigger a digest run; with the in-process queue, also deliver it."""
    in_process = isinstance(engine.queue, InProcessJobQueue)
    if in_process:
        engine.start_worker()

    try:
        count = engine.trigger_digest()
    except NoSubscribers:
        print("No subscribers, nothing to send.")
        return 0

    print(f"Enqueued {count} digest jobs on the {engine.queue.name} queue.")

    if in_process:
        if not engine.queue.wait_until_idle(timeout=SEND_NOW_TIMEOUT):
            print("⚠️  Timed out waiting for digest jobs to finish")
            return 1
        stats = engine.stats.to_dict()
        print(f"Delivered: {stats['completed']}  Failed: {stats['failed']}")
        return 1 if stats["failed"] else 0

    return 0


def random_quote(engine: QuoteDigestEngine) -> int:
    try:
        quote = engine.pick_random_approved()
    except NotFound as e:
        print(f"No quote available: {e}")
        return 1

    print(f'"{quote.text}"')
    print(f"  - {quote.author} ({quote.area})")
    return 0


def run_forever(engine: QuoteDigestEngine, schedule: bool) -> int:
    """Block until SIGINT/SIGTERM while the worker and scheduler run."""
    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    engine.start(schedule=schedule)
    next_run = engine.scheduler.next_run_time()
    if next_run:
        logger.info("Next digest run: %s", next_run)

    try:
        while not stop.is_set():
            stop.wait(1.0)
    finally:
        engine.shutdown()
    return 0


def serve(engine: QuoteDigestEngine, port: int, schedule: bool) -> int:
    from web.app import create_app

    engine.start(schedule=schedule)
    try:
        create_app(engine).run(host="0.0.0.0", port=port, debug=False)
    finally:
        engine.shutdown()
    return 0


def main(argv: list = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:]).

    Returns:
        Exit code (0 = success, 1 = error, 130 = interrupted).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()

    if args.show_config:
        show_config(settings)
        return 0

    level = "ERROR" if args.quiet else settings.log_level
    configure_logging(level, debug=args.verbose or settings.debug)

    errors = validate_config(settings)
    for error in errors:
        logger.warning("Configuration: %s", error)

    schedule = not args.no_schedule

    try:
        engine = QuoteDigestEngine(settings)

        if args.send_now:
            return send_now(engine)
        if args.random_quote:
            return random_quote(engine)
        if args.worker:
            return run_forever(engine, schedule)
        if args.serve:
            return serve(engine, args.port or settings.port, schedule)

        parser.print_help()
        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except QuoteDigestError as e:
        print(f"\n❌ {type(e).__name__}: {e}")
        return 1
    except Exception as e:
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
