"""Domain exceptions raised by the relationship and notification layers.

The web and MCP layers translate these into client-facing results:
NotFound -> 404, Invalid* -> 400, StoreUnavailable -> 503.
"""


class SocialGraphError(Exception):
    """Base class for all domain errors."""


class NotFoundError(SocialGraphError):
    """A user, edge or notification does not exist."""

    def __init__(self, resource: str, identifier: int | str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class InvalidOperationError(SocialGraphError):
    """The operation is not allowed for these arguments (e.g. self-follow)."""


class NotFollowingError(InvalidOperationError):
    """Unfollow was requested for an edge that does not exist.

    Re-following is a silent success but unfollowing a user that is not
    followed is a client error.
    """

    def __init__(self, follower_id: int, followee_id: int):
        self.follower_id = follower_id
        self.followee_id = followee_id
        super().__init__(f"User {follower_id} is not following user {followee_id}")


class InvalidArgumentError(SocialGraphError):
    """A required field is missing or blank."""


class UsernameTakenError(InvalidArgumentError):
    """Another user already holds this username (case-insensitive)."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username '{username}' is already taken")


class StoreUnavailableError(SocialGraphError):
    """The graph store or notification log could not be reached."""
