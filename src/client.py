"""Mattermost client factory for ghrelay."""

from __future__ import annotations

import logging

from adapters.mattermost_client import MattermostClient
from settings import TOKEN_ENV, Settings


def build_client(settings: Settings) -> MattermostClient:
    """Create a Mattermost client from settings.

    The bot access token comes from the environment to keep secrets out of
    config.json.
    """

    # Fail fast on a missing token to avoid a stream of 401s per event.
    if not settings.token:
        raise RuntimeError(f"Missing {TOKEN_ENV} in environment")

    logging.getLogger(__name__).info("Initializing Mattermost client for %s", settings.mattermost_url)

    return MattermostClient(
        settings.mattermost_url,
        settings.token,
        timeout_seconds=settings.request_timeout_seconds,
    )
