"""Startup self-check of the configured team and feed channels.

The check is advisory: it only logs. A misconfigured feed stays inactive at
runtime instead of stopping the relay.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.config import RelayConfig
from core.destinations import DestinationResolver
from core.errors import RelayError, SuggestionError
from core.fuzzy import format_suggestions, suggest_names
from core.ports import ChatPort

LOGGER = logging.getLogger(__name__)


@dataclass
class SelfCheckReport:
    """What the self-check found. Empty fields mean the check stopped early."""

    team_name: str
    team_found: bool = False
    team_names: List[str] = field(default_factory=list)
    channel_names: List[str] = field(default_factory=list)
    missing_channels: Dict[str, List[str]] = field(default_factory=dict)
    complete: bool = False

    @property
    def ok(self) -> bool:
        return self.team_found and self.complete and not self.missing_channels


class SelfCheckAuditor:
    """Verifies that configured destinations exist, suggesting close names."""

    def __init__(self, chat: ChatPort) -> None:
        self._chat = chat

    async def run(self, config: RelayConfig) -> Optional[SelfCheckReport]:
        team_name = config.team_name
        if not team_name:
            LOGGER.warning("Self check skipped: no team configured")
            return None

        report = SelfCheckReport(team_name=team_name)
        # Lookups only; the bot id is not needed because membership is untouched.
        resolver = DestinationResolver(self._chat, bot_user_id="")

        try:
            team = await resolver.lookup_team(team_name)
        except RelayError as err:
            await self._report_teams(resolver, report)
            LOGGER.warning("Self check failed: unable to find configured team %s: %s", team_name, err)
            return report
        report.team_found = True

        try:
            channels = await resolver.list_channels(team)
        except RelayError as err:
            LOGGER.warning("Self check failed: unable to list channels: %s", err)
            return report

        for channel in channels:
            if channel.name:
                report.channel_names.append(channel.name)
            else:
                LOGGER.warning(
                    "Self check warn: found channel with empty name (display name %r)",
                    channel.display_name,
                )

        configured = {
            "issue feed": config.issue_channel,
            "pull request feed": config.pull_request_channel,
            "release feed": config.release_channel,
        }
        known = set(report.channel_names)
        missing = {label: name for label, name in configured.items() if name and name not in known}

        if missing:
            LOGGER.warning("Self check: one or more configured channels were not found in team %s", team_name)
            LOGGER.info("Self check: existing channels %s", json.dumps(report.channel_names, ensure_ascii=False))

        for label, channel_name in missing.items():
            suggestions = suggest_names(channel_name, report.channel_names)
            report.missing_channels[channel_name] = suggestions
            try:
                rendered = format_suggestions(suggestions)
            except SuggestionError as err:
                LOGGER.warning("Self check failed: unable to recommend channel names: %s", err)
                continue
            LOGGER.warning(
                "Self check error: unable to find configured %s channel %s, did you mean one of these? %s",
                label,
                channel_name,
                rendered,
            )

        report.complete = True
        if report.ok:
            LOGGER.info("Self check passed: configured team %s and channels found", team_name)
        return report

    async def _report_teams(self, resolver: DestinationResolver, report: SelfCheckReport) -> None:
        try:
            report.team_names = await resolver.list_team_names()
        except RelayError as err:
            LOGGER.warning("Self check failed: unable to list teams: %s", err)
            return
        LOGGER.info("Available teams %s", json.dumps(report.team_names, ensure_ascii=False))
