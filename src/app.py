"""Application entry point for the ghrelay webhook relay."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import signal
from logging.handlers import RotatingFileHandler
from typing import Optional

from aiohttp import web
from art import tprint

import settings
from adapters.github_events import GitHubEventSource
from adapters.mattermost_client import MattermostClient
from adapters.webhook_server import build_app
from client import build_client
from core.config import ConfigStore
from core.errors import ChatAPIError
from core.reconciler import MessageReconciler
from core.self_check import SelfCheckAuditor

NAME = "GHRELAY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _SecretMaskingFormatter(logging.Formatter):
    """Masks the bot token and webhook secret wherever they show up in a record."""

    MASK = "***"

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first, so a secret containing another is masked whole.
        ordered = sorted({secret for secret in secrets if secret}, key=len, reverse=True)
        self._pattern = re.compile("|".join(re.escape(secret) for secret in ordered)) if ordered else None

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if self._pattern is None:
            return message
        return self._pattern.sub(self.MASK, message)


def _secrets_to_mask(current: settings.Settings) -> list[str]:
    if not current.logging.get("mask_secrets", True):
        return []
    return [value for value in (current.token, current.webhook_secret) if value]


def _log_handlers(config: dict) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/ghrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
                backupCount=int(file_cfg.get("backup_count", 5)),
                encoding="utf-8",
            )
        )
    return handlers


def _configure_logging(current: settings.Settings) -> None:
    config = current.logging or {}
    if not config.get("enabled", True):
        return

    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _SecretMaskingFormatter(
        _secrets_to_mask(current),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers = _log_handlers(config)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)


async def _resolve_bot_user(client: MattermostClient) -> str:
    try:
        bot_user_id = await client.get_me()
    except ChatAPIError as err:
        raise RuntimeError(f"Unable to resolve the bot account behind {settings.TOKEN_ENV}: {err}") from err
    LOGGER.info("Relaying as user %s", bot_user_id)
    return bot_user_id


def _reload(config_store: ConfigStore) -> None:
    try:
        fresh = settings.load()
    except (OSError, ValueError) as err:
        LOGGER.error("Config reload failed, keeping the previous snapshot: %s", err)
        return
    config_store.replace(fresh.relay)
    LOGGER.info("Configuration reloaded")


async def _check(current: settings.Settings) -> None:
    async with build_client(current) as client:
        await SelfCheckAuditor(client).run(current.relay)


async def _serve(current: settings.Settings) -> None:
    async with build_client(current) as client:
        bot_user_id = await _resolve_bot_user(client)
        await SelfCheckAuditor(client).run(current.relay)

        config_store = ConfigStore(current.relay)
        reconciler = MessageReconciler(client, bot_user_id)
        event_source = GitHubEventSource(current.webhook_secret, reconciler, config_store)
        # Register handlers up front so disabled feeds are reported at startup.
        event_source.handlers()

        runner = web.AppRunner(build_app(event_source, current.server.path))
        await runner.setup()
        site = web.TCPSite(runner, current.server.host, current.server.port)
        await site.start()
        LOGGER.info(
            "Listening for GitHub events on http://%s:%s%s",
            current.server.host,
            current.server.port,
            current.server.path,
        )

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, stop.set)
        loop.add_signal_handler(signal.SIGTERM, stop.set)
        loop.add_signal_handler(signal.SIGHUP, _reload, config_store)
        try:
            await stop.wait()
        finally:
            LOGGER.info("Shutting down")
            await runner.cleanup()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ghrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Serve GitHub webhooks (default)")
    subparsers.add_parser("check", help="Verify the configured team and channels, then exit")

    args = parser.parse_args(argv)

    _print_banner()
    current = settings.load()
    _configure_logging(current)
    LOGGER.info("Starting ghrelay")

    if args.command == "check":
        asyncio.run(_check(current))
        return
    asyncio.run(_serve(current))


if __name__ == "__main__":
    main()
