"""Locate bot-authored posts for a tracking term."""

from __future__ import annotations

import logging
from typing import List, Optional

from core.destinations import DestinationResolver
from core.errors import BotUnavailableError, ChatAPIError, wrap_api_error
from core.models import Post
from core.ports import ChatPort

LOGGER = logging.getLogger(__name__)


class PostLocator:
    """Finds the posts the bot already made for a tracking term."""

    def __init__(self, chat: ChatPort, bot_user_id: Optional[str], include_archived: bool = False) -> None:
        self._chat = chat
        self._bot_user_id = bot_user_id
        self._include_archived = include_archived

    async def find(self, term: str, team_name: str, channel_name: str) -> List[Post]:
        """Return the bot's posts in the channel that match the term.

        Search is term-based and scoped to the whole team, so results are
        filtered to the resolved channel and to the bot as author. Mentions
        in other channels or by other users are never returned.
        """

        if not self._bot_user_id:
            raise BotUnavailableError()

        resolver = DestinationResolver(self._chat, self._bot_user_id, self._include_archived)
        destination = await resolver.resolve(team_name, channel_name)

        try:
            results = await self._chat.search_posts(destination.team.id, term)
        except ChatAPIError as err:
            raise wrap_api_error(err, f"search posts in team {team_name}") from err

        posts = [
            post
            for post in results
            if post.channel_id == destination.channel.id and post.user_id == self._bot_user_id
        ]
        LOGGER.debug(
            "Search for %s returned %s posts, %s tracked in %s",
            term,
            len(results),
            len(posts),
            channel_name,
        )
        return posts
