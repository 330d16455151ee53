"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Mattermost or GitHub payload shapes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    display_name: str = ""


@dataclass(frozen=True)
class Channel:
    id: str
    name: str
    team_id: str = ""
    display_name: str = ""


@dataclass(frozen=True)
class TeamMember:
    team_id: str
    user_id: str


@dataclass(frozen=True)
class Post:
    """A chat post. Tracked posts are the ones authored by the bot."""

    channel_id: str
    user_id: str
    message: str
    is_pinned: bool = False
    id: Optional[str] = None


@dataclass(frozen=True)
class Destination:
    """Resolved team and channel for one reconciliation."""

    team: Team
    channel: Channel


class EventKind(str, Enum):
    ISSUE_OPENED = "issue-opened"
    PR_OPENED = "pr-opened"
    PR_READY = "pr-ready"
    PR_CLOSED = "pr-closed"
    RELEASE_PUBLISHED = "release-published"
    RELEASE_PRERELEASED = "release-prereleased"


@dataclass(frozen=True)
class IssueEvent:
    title: str
    html_url: str
    state_reason: Optional[str] = None


@dataclass(frozen=True)
class PullRequestEvent:
    owner: str
    repo: str
    number: int
    title: str
    html_url: str
    draft: bool = False


@dataclass(frozen=True)
class ReleaseEvent:
    name: str
    tag_name: str
    html_url: str
