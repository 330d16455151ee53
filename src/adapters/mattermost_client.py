"""Mattermost REST API adapter.

Implements the core ChatPort against the Mattermost v4 API using a bot
access token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, List, Optional
from urllib.parse import quote

import aiohttp

from core.errors import ChatAPIError, NotFoundError
from core.models import Channel, Post, Team, TeamMember

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v4"


def _team(data: dict) -> Team:
    return Team(id=data["id"], name=data.get("name", ""), display_name=data.get("display_name", ""))


def _channel(data: dict) -> Channel:
    return Channel(
        id=data["id"],
        name=data.get("name", ""),
        team_id=data.get("team_id", ""),
        display_name=data.get("display_name", ""),
    )


def _post(data: dict) -> Post:
    return Post(
        id=data.get("id"),
        channel_id=data.get("channel_id", ""),
        user_id=data.get("user_id", ""),
        message=data.get("message", ""),
        is_pinned=bool(data.get("is_pinned", False)),
    )


class MattermostClient:
    """ChatPort adapter that talks to a Mattermost server over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "MattermostClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._token}"},
            )
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[dict] = None,
        payload: Optional[dict] = None,
        not_found: Optional[tuple[str, str]] = None,
    ) -> Any:
        url = f"{self._base_url}{API_PREFIX}{path}"
        try:
            async with self._get_session().request(method, url, params=params, json=payload) as resp:
                if resp.status == 404 and not_found is not None:
                    raise NotFoundError(*not_found)
                if resp.status >= 400:
                    raise ChatAPIError(operation, await _error_detail(resp), resp.status)
                if resp.status == 204:
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as err:
                    raise ChatAPIError(operation, f"invalid JSON response: {err}", resp.status) from err
        except asyncio.TimeoutError as err:
            raise ChatAPIError(operation, "request timed out") from err
        except aiohttp.ClientError as err:
            raise ChatAPIError(operation, str(err)) from err

    async def get_me(self) -> str:
        """Return the user id behind the access token."""

        data = await self._request("GET", "/users/me", "get current user")
        return data["id"]

    async def get_team_by_name(self, name: str) -> Team:
        data = await self._request(
            "GET",
            f"/teams/name/{quote(name, safe='')}",
            f"get team {name}",
            not_found=("team", name),
        )
        return _team(data)

    async def list_teams(self, page: int, per_page: int) -> List[Team]:
        data = await self._request("GET", "/teams", "list teams", params={"page": page, "per_page": per_page})
        return [_team(item) for item in data or []]

    async def list_team_members(self, team_id: str, page: int, per_page: int) -> List[TeamMember]:
        data = await self._request(
            "GET",
            f"/teams/{team_id}/members",
            "list team members",
            params={"page": page, "per_page": per_page},
        )
        return [TeamMember(team_id=item.get("team_id", team_id), user_id=item["user_id"]) for item in data or []]

    async def add_team_member(self, team_id: str, user_id: str) -> None:
        await self._request(
            "POST",
            f"/teams/{team_id}/members",
            "add team member",
            payload={"team_id": team_id, "user_id": user_id},
        )

    async def get_channel_by_name(self, team_id: str, name: str, include_archived: bool) -> Channel:
        data = await self._request(
            "GET",
            f"/teams/{team_id}/channels/name/{quote(name, safe='')}",
            f"get channel {name}",
            params={"include_deleted": "true" if include_archived else "false"},
            not_found=("channel", name),
        )
        return _channel(data)

    async def list_public_channels(self, team_id: str, page: int, per_page: int) -> List[Channel]:
        data = await self._request(
            "GET",
            f"/teams/{team_id}/channels",
            "list public channels",
            params={"page": page, "per_page": per_page},
        )
        return [_channel(item) for item in data or []]

    async def search_posts(self, team_id: str, term: str) -> List[Post]:
        data = await self._request(
            "POST",
            f"/teams/{team_id}/posts/search",
            f"search posts for {term}",
            payload={"terms": term, "is_or_search": False},
        )
        data = data or {}
        posts = data.get("posts") or {}
        order = data.get("order") or list(posts)
        return [_post(posts[post_id]) for post_id in order if post_id in posts]

    async def create_post(self, post: Post) -> Post:
        data = await self._request(
            "POST",
            "/posts",
            "create post",
            payload={"channel_id": post.channel_id, "message": post.message},
        )
        created = _post(data)
        if post.is_pinned and not created.is_pinned:
            await self._set_pinned(created.id, True)
            created = replace(created, is_pinned=True)
        return created

    async def update_post(self, post: Post) -> Post:
        """Apply the post's pinned flag. Bodies are never edited."""

        if not post.id:
            raise ChatAPIError("update post", "post has no id")
        await self._set_pinned(post.id, post.is_pinned)
        return post

    async def _set_pinned(self, post_id: str, pinned: bool) -> None:
        action = "pin" if pinned else "unpin"
        await self._request("POST", f"/posts/{post_id}/{action}", f"{action} post {post_id}")
        LOGGER.debug("Post %s: %s done", post_id, action)


async def _error_detail(resp: aiohttp.ClientResponse) -> str:
    body = await resp.text()
    try:
        data = await resp.json(content_type=None)
    except ValueError:
        return body
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return body
