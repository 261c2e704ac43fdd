import asyncio
import os
import sys
import time
from typing import Any

import pytest

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

from social_graph_service.models.validators import username_key  # noqa: E402


class FakeGraphClient:
    """In-memory stand-in for GraphClient with the same method contract.

    Each method completes its check-and-mutate step without awaiting in the
    middle, mirroring FalkorDB's per-query atomicity.
    """

    def __init__(self):
        self.users: dict[int, dict[str, Any]] = {}
        self.edges: dict[tuple[int, int], float] = {}
        self._next_id = 1
        self.closed = False

    def _key_taken(self, key: str, exclude: int | None = None) -> bool:
        return any(u["username_key"] == key and uid != exclude for uid, u in self.users.items())

    def _profile(self, uid: int) -> dict[str, Any]:
        u = self.users[uid]
        return {
            "id": uid,
            "username": u["username"],
            "name": u["name"],
            "bio": u["bio"],
            "email": u["email"],
            "joined": u["joined"],
            "followers": sum(1 for (_, b) in self.edges if b == uid),
            "following": sum(1 for (a, _) in self.edges if a == uid),
        }

    async def create_user(self, username, name, email=None, bio=None, joined=None):
        await asyncio.sleep(0)
        key = username_key(username)
        if self._key_taken(key):
            return None
        uid = self._next_id
        self._next_id += 1
        self.users[uid] = {
            "username": username,
            "username_key": key,
            "name": name,
            "email": email or "",
            "bio": bio or "",
            "joined": joined if joined is not None else time.time(),
        }
        u = self.users[uid]
        return {"id": uid, "username": username, "name": name, "bio": u["bio"], "email": u["email"], "joined": u["joined"]}

    async def update_user(self, user_id, username, name, email=None, bio=None):
        await asyncio.sleep(0)
        key = username_key(username)
        if user_id not in self.users or self._key_taken(key, exclude=user_id):
            return False
        u = self.users[user_id]
        u.update(username=username, username_key=key, name=name)
        if email is not None:
            u["email"] = email
        if bio is not None:
            u["bio"] = bio
        return True

    async def get_profile(self, user_id):
        await asyncio.sleep(0)
        return self._profile(user_id) if user_id in self.users else None

    async def find_profile_by_username(self, username):
        key = username_key(username)
        for uid, u in self.users.items():
            if u["username_key"] == key:
                return self._profile(uid)
        return None

    async def list_profiles(self):
        return [self._profile(uid) for uid in sorted(self.users)]

    async def existing_user_ids(self, user_ids):
        return {uid for uid in user_ids if uid in self.users}

    async def follow(self, follower_id, followee_id, created_at=None):
        if follower_id == followee_id:
            raise ValueError("Cannot create a FOLLOWS edge from a user to itself")
        await asyncio.sleep(0)
        if follower_id not in self.users or followee_id not in self.users:
            return None
        created = (follower_id, followee_id) not in self.edges
        if created:
            self.edges[(follower_id, followee_id)] = created_at if created_at is not None else time.time()
        return {"actor_username": self.users[follower_id]["username"], "created": created}

    async def unfollow(self, follower_id, followee_id):
        await asyncio.sleep(0)
        if self.edges.pop((follower_id, followee_id), None) is None:
            return None
        return self.users[follower_id]["username"]

    async def is_following(self, follower_id, followee_id):
        return (follower_id, followee_id) in self.edges

    async def list_neighbours(self, user_id, direction):
        if user_id not in self.users:
            return None
        if direction == "followers":
            ids = [a for (a, b) in self.edges if b == user_id]
        else:
            ids = [b for (a, b) in self.edges if a == user_id]
        rows = [
            {"id": i, "username": self.users[i]["username"], "name": self.users[i]["name"], "bio": self.users[i]["bio"]}
            for i in ids
        ]
        return sorted(rows, key=lambda r: (r["username"], r["id"]))

    async def get_graph_stats(self):
        return {
            "graph_name": "fake",
            "user_count": len(self.users),
            "follows_count": len(self.edges),
            "status": "operational",
        }

    async def close(self):
        self.closed = True


class FakeProfileCache:
    """In-memory stand-in for RedisCache with the same versioned populate."""

    def __init__(self):
        self.profiles: dict[int, dict[str, Any]] = {}
        self.versions: dict[int, int] = {}

    async def get_profile(self, user_id):
        return self.profiles.get(user_id)

    async def read_version(self, user_id):
        return str(self.versions.get(user_id, 0))

    async def populate_profile(self, user_id, payload, version):
        if str(self.versions.get(user_id, 0)) != version:
            return False
        self.profiles[user_id] = payload
        return True

    async def invalidate_profiles(self, *user_ids):
        for uid in user_ids:
            self.versions[uid] = self.versions.get(uid, 0) + 1
            self.profiles.pop(uid, None)
        return True


@pytest.fixture
def fake_cache():
    """In-memory versioned profile cache."""
    return FakeProfileCache()


@pytest.fixture
def fake_graph():
    """In-memory graph client."""
    return FakeGraphClient()


@pytest.fixture
async def notification_log(tmp_path):
    """Real aiosqlite notification log in a temporary directory."""
    from social_graph_service.storage.notification_log import NotificationLog

    log = NotificationLog(str(tmp_path / "notifications" / "notifications.db"))
    await log.initialize()
    yield log
    await log.close()
