"""Signed-in user identity for the current client session."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def current_user_id(self) -> str | None: ...


class SessionIdentity:
    """Holds the id of the user signed in to this session, if any."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id

    def current_user_id(self) -> str | None:
        return self._user_id

    @property
    def is_signed_in(self) -> bool:
        return self._user_id is not None

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id
        logger.info("Session signed in as %s", user_id)

    def sign_out(self) -> None:
        logger.info("Session signed out (was %s)", self._user_id)
        self._user_id = None
