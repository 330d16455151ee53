"""Error types raised by the core and its adapters."""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for every error raised while relaying an event."""


class NotFoundError(RelayError):
    """A team or channel could not be found by name."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} not found: {name}")


class BotUnavailableError(RelayError):
    """The bot identity is unknown, so nothing can be posted."""

    def __init__(self) -> None:
        super().__init__("bot user id is not set")


class ChatAPIError(RelayError):
    """A chat API call failed."""

    def __init__(self, operation: str, detail: str, status: Optional[int] = None) -> None:
        self.operation = operation
        self.detail = detail
        self.status = status
        prefix = f"{operation} failed"
        if status is not None:
            prefix = f"{prefix} ({status})"
        super().__init__(f"{prefix}: {detail}")


class SuggestionError(RelayError):
    """Suggested names could not be rendered for logging."""


def wrap_api_error(err: ChatAPIError, operation: str) -> ChatAPIError:
    """Return a ChatAPIError naming the higher-level operation that failed.

    Use as `raise wrap_api_error(err, "...") from err` so the original error
    stays on the cause chain.
    """

    return ChatAPIError(operation, str(err), err.status)
