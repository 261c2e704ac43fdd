"""User data models.

``UserSummary`` is what neighbour listings return; ``UserProfile`` adds the
derived follower/following counts. Counts are never stored; they are
filled from the graph at read time.
"""

from datetime import datetime, timezone
from typing import Any, Self

from pydantic import BaseModel

from .validators import NonNegativeInt


def _float_to_iso(ts: float | None) -> str | None:
    """Convert a float epoch timestamp to an ISO-8601 UTC string."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class UserSummary(BaseModel):
    """Public user attributes, as listed in followers/following."""

    id: int
    username: str
    name: str = ""
    bio: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self:
        return cls(
            id=int(row["id"]),
            username=row["username"],
            name=row.get("name") or "",
            bio=row.get("bio") or "",
        )


class UserProfile(UserSummary):
    """User attributes plus derived follower/following counts."""

    email: str | None = None
    joined: float | None = None
    followers: NonNegativeInt = 0
    following: NonNegativeInt = 0

    @property
    def joined_iso(self) -> str | None:
        return _float_to_iso(self.joined)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Self:
        joined = row.get("joined")
        return cls(
            id=int(row["id"]),
            username=row["username"],
            name=row.get("name") or "",
            bio=row.get("bio") or "",
            email=row.get("email") or None,
            joined=float(joined) if joined is not None else None,
            followers=int(row.get("followers") or 0),
            following=int(row.get("following") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise for caching and API responses."""
        data = self.model_dump()
        data["joined_iso"] = self.joined_iso
        return data

