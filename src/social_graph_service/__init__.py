"""Social Graph Service.

Follow graph on FalkorDB with derived follower/following counts and
best-effort follow/unfollow notifications.
"""

__version__ = "1.0.0"
