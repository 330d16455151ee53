"""Static configuration for ghrelay.

Destinations, server, and logging settings live in a single JSON file for
quick edits without touching Python. Secrets (the Mattermost bot token and
the webhook secret) come from the environment via python-dotenv.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from core.config import RelayConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# GHRELAY_CONFIG overrides the location, mostly for containers.
CONFIG_PATH = os.getenv("GHRELAY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

TOKEN_ENV = "MATTERMOST_TOKEN"
WEBHOOK_SECRET_ENV = "GITHUB_WEBHOOK_SECRET"


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8080
    path: str = "/github"


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs, parsed from config.json and env."""

    mattermost_url: str
    relay: RelayConfig
    server: ServerSettings
    request_timeout_seconds: float = 10.0
    logging: dict = field(default_factory=dict)
    token: str = ""
    webhook_secret: str = ""


def _load_json_config(path: str) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def build_relay_config(raw: dict) -> RelayConfig:
    """Build the destination snapshot; names are trimmed here."""

    mattermost = raw.get("mattermost", {})
    return RelayConfig.from_names(
        team_name=mattermost.get("team"),
        issue_channel=mattermost.get("issue_feed_channel"),
        pull_request_channel=mattermost.get("pull_request_feed_channel"),
        release_channel=mattermost.get("release_feed_channel"),
        include_archived_channels=bool(mattermost.get("include_archived_channels", False)),
    )


def build_settings(raw: dict) -> Settings:
    mattermost = raw.get("mattermost", {})
    url = str(mattermost.get("url", "")).strip()
    if not url:
        raise ValueError("mattermost.url is required")

    server = raw.get("server", {})
    return Settings(
        mattermost_url=url,
        relay=build_relay_config(raw),
        server=ServerSettings(
            host=str(server.get("host", "0.0.0.0")),
            port=int(server.get("port", 8080)),
            path=str(server.get("path", "/github")),
        ),
        request_timeout_seconds=float(mattermost.get("request_timeout_seconds", 10)),
        logging=raw.get("logging", {}),
        token=os.getenv(TOKEN_ENV, ""),
        webhook_secret=os.getenv(WEBHOOK_SECRET_ENV, ""),
    )


def load(path: str = CONFIG_PATH) -> Settings:
    """Read config.json and the environment into a Settings snapshot."""

    load_dotenv()
    return build_settings(_load_json_config(path))
