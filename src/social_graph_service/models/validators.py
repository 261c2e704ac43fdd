"""Shared Pydantic types and validators for reuse across models.

Centralises username normalisation, id constraints and Literal enums so the
HTTP, MCP, service and graph layers speak the same language.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ---------------------------------------------------------------------------
# String normalisation
# ---------------------------------------------------------------------------


def username_key(username: str) -> str:
    """Case-insensitive lookup key for a username.

    * ``"  Alice "`` → ``"alice"``
    """
    return username.strip().casefold()


# ---------------------------------------------------------------------------
# Numeric types
# ---------------------------------------------------------------------------

UserId = Annotated[int, Field(ge=1)]
"""Positive user identifier."""

NotificationId = Annotated[int, Field(ge=1)]
"""Positive notification identifier."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer ≥ 0, for counts."""


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

Direction = Literal["followers", "following"]
"""Edge direction relative to a user: incoming (followers) or outgoing (following)."""
