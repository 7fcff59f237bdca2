"""Explicit per-user session passed to every store call and page loader."""

from __future__ import annotations

from dataclasses import dataclass

from . import config
from .errors import InvalidRecordError


@dataclass(frozen=True)
class UserSession:
    """Identity of the caller, as supplied by the authentication layer.

    ``user_id`` is opaque; the store only compares it for equality.
    """

    user_id: str
    display_name: str = ''

    def __post_init__(self) -> None:
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise InvalidRecordError("A session needs a non-empty user id")

    @property
    def label(self) -> str:
        return self.display_name or self.user_id


def default_session() -> UserSession:
    """Session for the configured local user."""
    return UserSession(user_id=config.DEFAULT_USER_ID)
