"""Destination resolution: team and channel names to Mattermost entities.

Nothing here is cached. Every reconciliation resolves names again so that a
renamed team or channel is picked up on the next event.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import List

from core.errors import ChatAPIError, wrap_api_error
from core.models import Channel, Destination, Team
from core.paging import PAGE_SIZE, iter_pages
from core.ports import ChatPort

LOGGER = logging.getLogger(__name__)


class DestinationResolver:
    """Maps configured names to a Destination for the bot user."""

    def __init__(self, chat: ChatPort, bot_user_id: str, include_archived: bool = False) -> None:
        self._chat = chat
        self._bot_user_id = bot_user_id
        self._include_archived = include_archived

    async def ensure_team(self, team_name: str) -> Team:
        """Resolve the team and make sure the bot is a member of it.

        Posting requires team membership, and the bot may have been removed
        or never invited. Adding an existing member is harmless.
        """

        try:
            team = await self._chat.get_team_by_name(team_name)
        except ChatAPIError as err:
            raise wrap_api_error(err, f"get team by name {team_name}") from err

        if await self._is_member(team):
            return team

        LOGGER.info("Adding bot user to team %s", team_name)
        try:
            await self._chat.add_team_member(team.id, self._bot_user_id)
        except ChatAPIError as err:
            raise wrap_api_error(err, f"add bot user to team {team_name}") from err
        return team

    async def _is_member(self, team: Team) -> bool:
        fetch = partial(self._chat.list_team_members, team.id)
        try:
            async for member in iter_pages(fetch, PAGE_SIZE):
                if member.user_id == self._bot_user_id:
                    return True
        except ChatAPIError as err:
            raise wrap_api_error(err, f"list members of team {team.name}") from err
        return False

    async def resolve_channel(self, team: Team, channel_name: str) -> Channel:
        try:
            return await self._chat.get_channel_by_name(team.id, channel_name, self._include_archived)
        except ChatAPIError as err:
            raise wrap_api_error(err, f"get channel by name {channel_name}") from err

    async def resolve(self, team_name: str, channel_name: str) -> Destination:
        team = await self.ensure_team(team_name)
        channel = await self.resolve_channel(team, channel_name)
        return Destination(team=team, channel=channel)

    # Read-only lookups for the self-check; these never touch membership.

    async def lookup_team(self, team_name: str) -> Team:
        return await self._chat.get_team_by_name(team_name)

    async def list_team_names(self) -> List[str]:
        return [team.name async for team in iter_pages(self._chat.list_teams, PAGE_SIZE)]

    async def list_channels(self, team: Team) -> List[Channel]:
        fetch = partial(self._chat.list_public_channels, team.id)
        return [channel async for channel in iter_pages(fetch, PAGE_SIZE)]
