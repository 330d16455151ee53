from __future__ import annotations

import logging

import app
import settings
from core.config import RelayConfig


def _settings(**logging_config) -> settings.Settings:
    return settings.Settings(
        mattermost_url="https://chat.example.test",
        relay=RelayConfig(),
        server=settings.ServerSettings(),
        logging=logging_config,
        token="tok-abc123",
        webhook_secret="hook-secret",
    )


def _format(formatter: logging.Formatter, message: str, *args) -> str:
    record = logging.LogRecord("ghrelay", logging.INFO, __file__, 1, message, args, None)
    return formatter.format(record)


def test_formatter_masks_token_and_webhook_secret() -> None:
    formatter = app._SecretMaskingFormatter(app._secrets_to_mask(_settings()), fmt="%(message)s")

    line = _format(formatter, "Authorization: Bearer %s, secret=%s", "tok-abc123", "hook-secret")

    assert line == "Authorization: Bearer ***, secret=***"


def test_longer_secret_is_masked_whole() -> None:
    formatter = app._SecretMaskingFormatter(["abc", "abcdef"], fmt="%(message)s")

    assert _format(formatter, "value abcdef") == "value ***"


def test_masking_can_be_turned_off() -> None:
    assert app._secrets_to_mask(_settings(mask_secrets=False)) == []

    formatter = app._SecretMaskingFormatter([], fmt="%(message)s")
    assert _format(formatter, "token tok-abc123") == "token tok-abc123"
