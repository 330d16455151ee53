"""GitHub webhook event source.

Verifies delivery signatures, maps (X-GitHub-Event, action) pairs onto core
event kinds, and dispatches them to the reconciler's handlers.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from core.config import ConfigStore, RelayConfig
from core.models import EventKind, IssueEvent, PullRequestEvent, ReleaseEvent
from core.reconciler import Handler, MessageReconciler, Outcome

LOGGER = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="

# (event name, action) -> kind. GitHub sends "published" for both releases
# and pre-releases, so releases are keyed on "released" / "prereleased".
_EVENT_KINDS: Dict[Tuple[str, str], EventKind] = {
    ("issues", "opened"): EventKind.ISSUE_OPENED,
    ("pull_request", "opened"): EventKind.PR_OPENED,
    ("pull_request", "ready_for_review"): EventKind.PR_READY,
    ("pull_request", "closed"): EventKind.PR_CLOSED,
    ("release", "released"): EventKind.RELEASE_PUBLISHED,
    ("release", "prereleased"): EventKind.RELEASE_PRERELEASED,
}


class WebhookRequestError(ValueError):
    """The delivery is not acceptable (bad signature or payload)."""


def verify_signature(secret: str, body: bytes, signature_header: Optional[str]) -> bool:
    """Check X-Hub-Signature-256 against the shared secret."""

    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        return False
    expected = SIGNATURE_PREFIX + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header)


def _owner_name(repository: dict) -> str:
    owner = repository.get("owner") or {}
    return owner.get("login") or owner.get("name") or ""


def parse_event(event_name: str, payload: dict):
    """Return (kind, event) for a supported delivery, otherwise None."""

    kind = _EVENT_KINDS.get((event_name, payload.get("action", "")))
    if kind is None:
        return None

    try:
        if event_name == "issues":
            issue = payload["issue"]
            return kind, IssueEvent(
                title=issue.get("title", ""),
                html_url=issue.get("html_url", ""),
                state_reason=issue.get("state_reason"),
            )
        if event_name == "pull_request":
            repository = payload.get("repository") or {}
            pull_request = payload["pull_request"]
            return kind, PullRequestEvent(
                owner=_owner_name(repository),
                repo=repository.get("name", ""),
                number=int(pull_request["number"]),
                title=pull_request.get("title", ""),
                html_url=pull_request.get("html_url", ""),
                draft=bool(pull_request.get("draft", False)),
            )
        release = payload["release"]
        return kind, ReleaseEvent(
            name=release.get("name") or "",
            tag_name=release.get("tag_name") or "",
            html_url=release.get("html_url") or "",
        )
    except (KeyError, TypeError, ValueError) as err:
        raise WebhookRequestError(f"malformed {event_name} payload: {err}") from err


@dataclass(frozen=True)
class DispatchResult:
    status: str
    kind: Optional[EventKind] = None
    outcome: Optional[Outcome] = None


class GitHubEventSource:
    """Turns raw webhook deliveries into reconciler calls."""

    def __init__(self, secret: str, reconciler: MessageReconciler, config_store: ConfigStore) -> None:
        self._secret = secret
        self._reconciler = reconciler
        self._config_store = config_store
        self._registered: Optional[Tuple[RelayConfig, Dict[EventKind, Handler]]] = None
        if not secret:
            LOGGER.warning("No webhook secret configured, signature verification is disabled")

    def handlers(self) -> Dict[EventKind, Handler]:
        """Handlers for the current config snapshot, rebuilt when it changes."""

        config = self._config_store.current()
        if self._registered is None or self._registered[0] is not config:
            self._registered = (config, self._reconciler.handlers(config))
        return self._registered[1]

    async def dispatch(
        self,
        event_name: str,
        body: bytes,
        signature: Optional[str] = None,
        delivery_id: str = "",
    ) -> DispatchResult:
        """Handle one delivery. Handler errors propagate to the caller."""

        if self._secret and not verify_signature(self._secret, body, signature):
            raise WebhookRequestError("signature mismatch")

        if event_name == "ping":
            return DispatchResult(status="pong")

        try:
            payload = json.loads(body)
        except ValueError as err:
            raise WebhookRequestError(f"invalid JSON body: {err}") from err
        if not isinstance(payload, dict):
            raise WebhookRequestError("payload must be a JSON object")

        parsed = parse_event(event_name, payload)
        if parsed is None:
            LOGGER.debug("Ignoring %s/%s delivery %s", event_name, payload.get("action"), delivery_id)
            return DispatchResult(status="ignored")
        kind, event = parsed

        handler = self.handlers().get(kind)
        if handler is None:
            LOGGER.debug("Feed for %s is disabled, delivery %s ignored", kind.value, delivery_id)
            return DispatchResult(status="ignored", kind=kind)

        outcome = await handler(event)
        LOGGER.info("Delivery %s (%s): %s", delivery_id, kind.value, outcome.value)
        return DispatchResult(status="handled", kind=kind, outcome=outcome)
