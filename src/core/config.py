"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class FeedConfig:
    """Destination of one feed. Active only when both names are set."""

    team_name: str
    channel_name: str

    @classmethod
    def from_names(cls, team_name: str | None, channel_name: str | None) -> "FeedConfig":
        return cls(team_name=(team_name or "").strip(), channel_name=(channel_name or "").strip())

    @property
    def active(self) -> bool:
        return bool(self.team_name) and bool(self.channel_name)


@dataclass(frozen=True)
class RelayConfig:
    """Immutable snapshot of the destination settings."""

    team_name: str = ""
    issue_channel: str = ""
    pull_request_channel: str = ""
    release_channel: str = ""
    include_archived_channels: bool = False

    @classmethod
    def from_names(
        cls,
        team_name: str | None,
        issue_channel: str | None,
        pull_request_channel: str | None,
        release_channel: str | None,
        include_archived_channels: bool = False,
    ) -> "RelayConfig":
        return cls(
            team_name=(team_name or "").strip(),
            issue_channel=(issue_channel or "").strip(),
            pull_request_channel=(pull_request_channel or "").strip(),
            release_channel=(release_channel or "").strip(),
            include_archived_channels=include_archived_channels,
        )

    @property
    def issues(self) -> FeedConfig:
        return FeedConfig.from_names(self.team_name, self.issue_channel)

    @property
    def pull_requests(self) -> FeedConfig:
        return FeedConfig.from_names(self.team_name, self.pull_request_channel)

    @property
    def releases(self) -> FeedConfig:
        return FeedConfig.from_names(self.team_name, self.release_channel)


class ConfigStore:
    """Holds the current RelayConfig snapshot.

    Readers call current() once per event and keep that snapshot for the whole
    reconciliation. replace() swaps in a new snapshot; snapshots themselves are
    never mutated.
    """

    def __init__(self, config: RelayConfig) -> None:
        self._config = config
        self._write_lock = threading.Lock()

    def current(self) -> RelayConfig:
        return self._config

    def replace(self, config: RelayConfig) -> RelayConfig:
        with self._write_lock:
            previous = self._config
            self._config = config
        return previous
