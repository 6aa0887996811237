from __future__ import annotations

from typing import Optional


class GroupBotError(Exception):
    """Base class for failures isolated to a single turn."""


class NluUnavailable(GroupBotError):
    """The NLU service could not be reached or returned an unusable reply."""


class ProfileLookupFailed(GroupBotError):
    pass


class SendFailed(GroupBotError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GroupJoinFailed(SendFailed):
    pass


class UnknownCustomIntent(GroupBotError):
    def __init__(self, intent_name: Optional[str]) -> None:
        super().__init__(f"Invalid intent: {intent_name!r}")
        self.intent_name = intent_name
