"""Application entry point for the stormwatch alert service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.config_watcher import JsonConfigProvider
from adapters.log_notifier import LogNotifier
from adapters.nws_feed import NwsAlertFeed
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramChannelNotifier
from client import authorize, build_client
from core.coordinator import AlertCoordinator
from core.errors import ConfigError
from core.latest import LatestValue
from core.ports import ConfigProviderPort, FeedPort, NotifierPort

NAME = "STORMWATCH"
FONT = "tarty-1"

NOTIFICATION_METHODS = ("telegram", "bot", "log")


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = [os.getenv(name) for name in redact_cfg.get("patterns", [])]
    # Longest first so a secret containing another is masked whole.
    return sorted({value for value in values if value}, key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/stormwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if handlers:
        logging.basicConfig(level=level, handlers=handlers, force=True)


def _read_service_config(path: str) -> dict:
    """Read the sections that are fixed for the life of the process.

    A broken file still lets the service start; the watcher picks up the
    first valid version later.
    """

    try:
        return settings.read_config_file(path)
    except ConfigError:
        return {}


def _build_feed() -> NwsAlertFeed:
    return NwsAlertFeed(
        base_url=settings.FEED_BASE_URL,
        user_agent=settings.USER_AGENT,
        timeout=settings.FETCH_TIMEOUT_SECONDS,
    )


async def _build_notifier(method: str):
    # Select the notification adapter based on configuration to keep the
    # coordinator independent from delivery details.
    if method == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        return TelegramBotNotifier(bot_token=bot_token), None
    if method == "telegram":
        client = build_client()
        await client.connect()
        await authorize(client)
        return TelegramChannelNotifier(client), client
    if method == "log":
        return LogNotifier(), None
    raise RuntimeError(f"notification_method must be one of {', '.join(NOTIFICATION_METHODS)}")


def _build_coordinator(provider: ConfigProviderPort, feed: FeedPort, notifier: NotifierPort) -> AlertCoordinator:
    return AlertCoordinator(
        feed=feed,
        notifier=notifier,
        config_changes=provider.changes,
        initial_config=provider.current(),
        cleanup_interval=settings.CLEANUP_INTERVAL_SECONDS,
    )


async def _serve(config_path: str, method: str) -> None:
    logger = logging.getLogger(__name__)

    provider = JsonConfigProvider(config_path)
    provider.load_initial()

    notifier, telegram_client = await _build_notifier(method)
    logger.info("Selected notification method - %s", method)
    feed = _build_feed()
    coordinator = _build_coordinator(provider, feed, notifier)

    try:
        await asyncio.gather(coordinator.run(), provider.watch())
    finally:
        await feed.aclose()
        if isinstance(notifier, TelegramBotNotifier):
            await notifier.aclose()
        if telegram_client is not None:
            await telegram_client.disconnect()


def _run(config_path: str) -> None:
    _print_banner()
    service_config = _read_service_config(config_path)
    logging_cfg = service_config.get("logging", {})
    if logging_cfg.get("enabled", True):
        _configure_logging(logging_cfg)
    logger = logging.getLogger(__name__)

    method = service_config.get("notifications", {}).get("notification_method", "telegram")
    logger.info("Starting stormwatch")
    try:
        asyncio.run(_serve(config_path, method))
    except KeyboardInterrupt:
        logger.info("Stopped")


def _check(config_path: str) -> int:
    try:
        snapshot = settings.load_snapshot(config_path)
    except ConfigError as exc:
        print(f"Invalid config: {exc}")
        return 1

    print(f"Config OK: {config_path}")
    print(f"  channel:        {snapshot.destination}")
    print(f"  check interval: {int(snapshot.poll_interval.total_seconds())}s")
    print(f"  areas:          {snapshot.zone_param}")
    print(f"  categories:     {', '.join(sorted(snapshot.accepted_categories)) or '(none)'}")
    if snapshot.quiet_hours is not None:
        quiet = snapshot.quiet_hours
        print(f"  quiet hours:    {quiet.start.isoformat(timespec='minutes')} - {quiet.end.isoformat(timespec='minutes')}")
    return 0


async def _fetch_once(config_path: str, feed=None, now: Optional[datetime] = None) -> int:
    snapshot = settings.load_snapshot(config_path)
    now = now or datetime.now().astimezone()
    if snapshot.quiet_hours is not None and snapshot.quiet_hours.is_quiet(now.time()):
        # The running service would skip this check; show the feed anyway.
        print("Quiet hours are active; the service is not sending alerts right now.")
        snapshot = replace(snapshot, quiet_hours=None)

    notifier = LogNotifier()
    feed = feed or _build_feed()
    coordinator = AlertCoordinator(
        feed=feed,
        notifier=notifier,
        config_changes=LatestValue(),
        initial_config=snapshot,
    )
    try:
        await coordinator.handle_fetch_tick()
    finally:
        await feed.aclose()
    return notifier.sent


def _fetch(config_path: str) -> int:
    _configure_logging({"level": "INFO"})
    try:
        sent = asyncio.run(_fetch_once(config_path))
    except ConfigError as exc:
        print(f"Invalid config: {exc}")
        return 1
    print(f"{sent} alert(s) would be sent")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="stormwatch")
    parser.add_argument("--config", default=settings.CONFIG_PATH, help="Path to config.json")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the alert service")
    subparsers.add_parser("check", help="Validate the config file and print it")
    subparsers.add_parser("fetch", help="Fetch current alerts once and log them without sending")

    args = parser.parse_args(argv)
    if args.command == "check":
        sys.exit(_check(args.config))
    if args.command == "fetch":
        sys.exit(_fetch(args.config))
    _run(args.config)


if __name__ == "__main__":
    main()
