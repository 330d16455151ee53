"""Message reconciliation for relayed GitHub events.

Each event kind has one coroutine. Pull request announcements are tracked by
a term derived from (owner, repo, number): opened and ready-for-review both
converge on exactly one pinned post, and closing unpins it. Issues and
releases always produce a new unpinned post.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import replace
from enum import Enum
from functools import partial
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from core.config import FeedConfig, RelayConfig
from core.destinations import DestinationResolver
from core.errors import BotUnavailableError, ChatAPIError, wrap_api_error
from core.locator import PostLocator
from core.models import EventKind, IssueEvent, Post, PullRequestEvent, ReleaseEvent
from core.ports import ChatPort
from core.tracking import issue_message, pull_request_message, pull_request_term, release_message

LOGGER = logging.getLogger(__name__)

REOPENED = "reopened"


class Outcome(str, Enum):
    CREATED = "created"
    PINNED = "pinned"
    UNPINNED = "unpinned"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


Handler = Callable[[object], Awaitable[Outcome]]


class _TermLocks:
    """asyncio locks keyed by tracking term, dropped once nobody holds them."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, term: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(term, asyncio.Lock())
        self._holders[term] = self._holders.get(term, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[term] -= 1
            if not self._holders[term]:
                del self._holders[term]
                del self._locks[term]


class MessageReconciler:
    """Decides create / skip / pin / unpin for each inbound event.

    The configuration snapshot is passed into every call and never stored,
    so a reload only affects events that start after it.
    """

    def __init__(self, chat: ChatPort, bot_user_id: Optional[str]) -> None:
        self._chat = chat
        self._bot_user_id = bot_user_id
        self._term_locks = _TermLocks()

    def handlers(self, config: RelayConfig) -> Dict[EventKind, Handler]:
        """Return the handler for every event kind whose feed is active."""

        handlers: Dict[EventKind, Handler] = {}

        if config.issues.active:
            handlers[EventKind.ISSUE_OPENED] = partial(self.issue_opened, config=config)
        else:
            LOGGER.info("Team name or issue feed channel name is not set, issue events are disabled")

        if config.pull_requests.active:
            handlers[EventKind.PR_OPENED] = partial(self.pull_request_opened, config=config)
            handlers[EventKind.PR_READY] = partial(self.pull_request_ready, config=config)
            handlers[EventKind.PR_CLOSED] = partial(self.pull_request_closed, config=config)
        else:
            LOGGER.info("Team name or pull request feed channel name is not set, pull request events are disabled")

        if config.releases.active:
            handlers[EventKind.RELEASE_PUBLISHED] = partial(self.release_published, config=config)
            handlers[EventKind.RELEASE_PRERELEASED] = partial(self.release_prereleased, config=config)
        else:
            LOGGER.info("Team name or release feed channel name is not set, release events are disabled")

        return handlers

    async def issue_opened(self, event: IssueEvent, config: RelayConfig) -> Outcome:
        # Reopened issues were announced when they were first opened.
        if event.state_reason == REOPENED:
            return Outcome.SKIPPED
        await self._send(issue_message(event), config.issues, config, pinned=False)
        return Outcome.CREATED

    async def pull_request_opened(self, event: PullRequestEvent, config: RelayConfig) -> Outcome:
        # Drafts are announced once they are marked ready for review.
        if event.draft:
            return Outcome.SKIPPED
        return await self._announce_pull_request(event, config)

    async def pull_request_ready(self, event: PullRequestEvent, config: RelayConfig) -> Outcome:
        return await self._announce_pull_request(event, config)

    async def pull_request_closed(self, event: PullRequestEvent, config: RelayConfig) -> Outcome:
        feed = config.pull_requests
        term = pull_request_term(event)
        async with self._term_locks.hold(term):
            posts = await self._locate(term, feed, config)
            changed = await self._set_pinned(posts, False, feed)
        return Outcome.UNPINNED if changed else Outcome.UNCHANGED

    async def release_published(self, event: ReleaseEvent, config: RelayConfig) -> Outcome:
        await self._send(release_message(event), config.releases, config, pinned=False)
        return Outcome.CREATED

    async def release_prereleased(self, event: ReleaseEvent, config: RelayConfig) -> Outcome:
        await self._send(release_message(event, prerelease=True), config.releases, config, pinned=False)
        return Outcome.CREATED

    async def _announce_pull_request(self, event: PullRequestEvent, config: RelayConfig) -> Outcome:
        feed = config.pull_requests
        term = pull_request_term(event)
        async with self._term_locks.hold(term):
            posts = await self._locate(term, feed, config)
            if posts:
                # Already announced: repair the pin instead of posting twice.
                changed = await self._set_pinned(posts, True, feed)
                return Outcome.PINNED if changed else Outcome.UNCHANGED
            await self._send(pull_request_message(event), feed, config, pinned=True)
        return Outcome.CREATED

    async def _locate(self, term: str, feed: FeedConfig, config: RelayConfig):
        locator = PostLocator(self._chat, self._bot_user_id, config.include_archived_channels)
        return await locator.find(term, feed.team_name, feed.channel_name)

    async def _set_pinned(self, posts, pinned: bool, feed: FeedConfig) -> int:
        changed = 0
        for post in posts:
            if post.is_pinned == pinned:
                continue
            try:
                await self._chat.update_post(replace(post, is_pinned=pinned))
            except ChatAPIError as err:
                raise wrap_api_error(err, f"update post in channel {feed.channel_name}") from err
            changed += 1
        return changed

    async def _send(self, message: str, feed: FeedConfig, config: RelayConfig, pinned: bool) -> Post:
        if not self._bot_user_id:
            raise BotUnavailableError()

        resolver = DestinationResolver(self._chat, self._bot_user_id, config.include_archived_channels)
        destination = await resolver.resolve(feed.team_name, feed.channel_name)
        post = Post(
            channel_id=destination.channel.id,
            user_id=self._bot_user_id,
            message=message,
            is_pinned=pinned,
        )
        try:
            created = await self._chat.create_post(post)
        except ChatAPIError as err:
            raise wrap_api_error(err, f"create post in channel {feed.channel_name}") from err
        LOGGER.info("Posted to %s/%s (pinned=%s)", feed.team_name, feed.channel_name, pinned)
        return created
