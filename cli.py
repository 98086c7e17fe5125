#!/usr/bin/env python3
"""
Command-line interface for the room marketplace notification core.

Usage:
    rooms-notify [--log-level LEVEL] <command> [options]

Commands:
    demo      Walk through a notification scenario against the fixtures
    notify    Classify and dispatch one event with the configured email backend
    serve     Run the HTTP API under uvicorn
    test      Run pytest

Examples:
    rooms-notify demo listing-approved
    rooms-notify notify new_review user_id=user-001 reviewer_name="Bob Chen"
    rooms-notify serve --port 8080 --reload
"""

import argparse
import subprocess
import sys

from marketplace.config import configure_logging, get_settings

SCENARIOS = ["message", "booking", "listing-approved", "review", "email-failure", "all"]


def cmd_demo(args: argparse.Namespace) -> int:
    from dispatch.demo import (
        run_booking_demo,
        run_email_failure_demo,
        run_listing_approved_demo,
        run_message_demo,
        run_review_demo,
    )

    scenarios = {
        "message": run_message_demo,
        "booking": run_booking_demo,
        "listing-approved": run_listing_approved_demo,
        "review": run_review_demo,
        "email-failure": run_email_failure_demo,
    }
    selected = scenarios.values() if args.scenario == "all" else [scenarios[args.scenario]]
    for scenario in selected:
        scenario()
    return 0


def _parse_pairs(pairs: list[str]) -> dict[str, str]:
    data = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {pair!r}")
        data[key] = value
    return data


def cmd_notify(args: argparse.Namespace) -> int:
    """Dispatch one event and print the outcome as JSON."""
    from dispatch.dispatcher import NotificationDispatcher
    from dispatch.triggers import NotificationTriggers
    from marketplace.channels import build_email_channel
    from marketplace.errors import TemplateDataError, UnknownEventKind
    from marketplace.notification_store import NotificationStore

    settings = get_settings()
    triggers = NotificationTriggers(NotificationDispatcher(
        NotificationStore(),
        build_email_channel(settings),
        site_url=settings.site_url,
    ))
    try:
        outcome = triggers.notify(args.event_kind, _parse_pairs(args.data))
    except (UnknownEventKind, TemplateDataError, argparse.ArgumentTypeError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(outcome.model_dump_json(indent=2))
    return 0 if outcome.delivered else 1


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    print(f"Serving on http://{args.host}:{args.port} (docs at /docs)")
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_test(args: argparse.Namespace) -> int:
    return subprocess.run([sys.executable, "-m", "pytest", *args.pytest_args]).returncode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rooms-notify",
        description="Approval workflow and notification dispatch for the room marketplace",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo all
  %(prog)s demo email-failure
  %(prog)s notify new_message recipient_id=user-001 sender_name=Bob
  %(prog)s test -q
        """,
    )
    parser.add_argument("--log-level", default=None, help="Override ROOMS_LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    demo = commands.add_parser("demo", help="Walk through a notification scenario")
    demo.add_argument("scenario", choices=SCENARIOS)

    notify = commands.add_parser("notify", help="Classify and dispatch one event")
    notify.add_argument("event_kind", help="new_message, new_booking_request, listing_approved or new_review")
    notify.add_argument("data", nargs="*", metavar="key=value", help="Template data")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Restart on code changes")

    test = commands.add_parser("test", help="Run pytest")
    test.add_argument("pytest_args", nargs=argparse.REMAINDER, help="Passed through to pytest")

    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "demo":
        configure_logging(args.log_level)
        sys.exit(cmd_demo(args))
    elif args.command == "notify":
        configure_logging(args.log_level)
        sys.exit(cmd_notify(args))
    elif args.command == "serve":
        sys.exit(cmd_serve(args))
    elif args.command == "test":
        sys.exit(cmd_test(args))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
