"""Ports (interfaces) used by the core.

ChatPort defines the minimal contract for the chat backend so that the core
can be reused with a different client or an in-memory fake.
"""

from __future__ import annotations

from typing import List, Protocol

from core.models import Channel, Post, Team, TeamMember


class ChatPort(Protocol):
    """Chat operations required by the core.

    get_* lookups raise NotFoundError when the entity does not exist; every
    other failure is raised as ChatAPIError.
    """

    async def get_team_by_name(self, name: str) -> Team:
        ...

    async def list_teams(self, page: int, per_page: int) -> List[Team]:
        ...

    async def list_team_members(self, team_id: str, page: int, per_page: int) -> List[TeamMember]:
        ...

    async def add_team_member(self, team_id: str, user_id: str) -> None:
        ...

    async def get_channel_by_name(self, team_id: str, name: str, include_archived: bool) -> Channel:
        ...

    async def list_public_channels(self, team_id: str, page: int, per_page: int) -> List[Channel]:
        ...

    async def search_posts(self, team_id: str, term: str) -> List[Post]:
        ...

    async def create_post(self, post: Post) -> Post:
        ...

    async def update_post(self, post: Post) -> Post:
        ...
