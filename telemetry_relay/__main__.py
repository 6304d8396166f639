"""CLI entry point: ``python -m telemetry_relay <command>``."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import structlog


def _configure_logging(level: str, fmt: str) -> None:
    """Set up structlog with console or JSON rendering."""
    import logging

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telemetry_relay",
        description="Relay vehicle telemetry to a route planner and a chat webhook",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run the relay")
    run.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Log outbound requests; never send them",
    )
    run.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Send one sample per enabled sink then exit",
    )

    commands.add_parser("info", help="Print the next telemetry sample")
    commands.add_parser("reset-config", help="Reset route-planner settings to defaults")

    config = commands.add_parser("config", help="Read or write user settings")
    config_commands = config.add_subparsers(dest="config_command", required=True)
    config_set = config_commands.add_parser("set")
    config_set.add_argument("namespace")
    config_set.add_argument("key")
    config_set.add_argument("value")
    config_get = config_commands.add_parser("get")
    config_get.add_argument("namespace")
    config_get.add_argument("prefix", nargs="?", default="")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    # Load settings from env / .env file first, then override with CLI flags.
    from telemetry_relay.config import RelaySettings
    from telemetry_relay.exceptions import RelayError

    settings = RelaySettings()
    if getattr(args, "dry_run", None) is True:
        settings.dry_run = True

    _configure_logging(settings.log_level, settings.log_format)
    logger = structlog.get_logger("telemetry_relay")

    from telemetry_relay.app import build_relay, run_relay

    if args.command == "config":
        from telemetry_relay.config_store import YamlConfigStore

        store = YamlConfigStore(settings.config_path)
        if args.config_command == "set":
            store.set(args.namespace, args.key, args.value)
        else:
            print(json.dumps(store.get_values(args.namespace, args.prefix), indent=4))
        return

    relay = build_relay(settings)

    if args.command in ("info", "reset-config"):
        session = relay.route_session
        if session is None:
            print("Route planner is disabled (ENABLE_ROUTE_PLANNER=false)", file=sys.stderr)
            sys.exit(1)
        try:
            if args.command == "info":
                print(json.dumps(session.show_telemetry(), indent=4))
            else:
                session.reset_config()
        except RelayError as exc:
            print(f"{args.command} failed: {exc}", file=sys.stderr)
            sys.exit(1)
        return

    logger.info(
        "relay_starting",
        version=__import__("telemetry_relay").__version__,
        dry_run=settings.dry_run,
        once=args.once,
        scenario=settings.metrics_scenario,
    )

    try:
        asyncio.run(run_relay(settings, once=args.once, relay=relay))
    except KeyboardInterrupt:
        logger.info("relay_interrupted")
        sys.exit(0)


if __name__ == "__main__":
    main()
