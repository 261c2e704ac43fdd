"""
FalkorDB graph client for the social follow graph.

Users are :User nodes, follow relationships are :FOLLOWS edges. Every
operation is a single Cypher query, so FalkorDB's per-query atomicity is the
only serialization point:

- follow():   MATCH both users + MERGE the edge (idempotent, existence
              checked in the same query)
- unfollow(): MATCH the edge + DELETE (reports whether anything was deleted)
- counts:     in-degree and out-degree aggregated in one composed query

No in-process adjacency structure or counter is kept.
"""

import logging
import time
from typing import Any

from falkordb.asyncio import FalkorDB
from redis.asyncio import BlockingConnectionPool

from ..models.validators import Direction, username_key
from .schema import SCHEMA_STATEMENTS, USER_ID_SEQUENCE

logger = logging.getLogger(__name__)

_USER_COLUMNS = ("id", "username", "name", "bio", "email", "joined")
_PROFILE_COLUMNS = _USER_COLUMNS + ("followers", "following")
_SUMMARY_COLUMNS = ("id", "username", "name", "bio")

# Both aggregations run inside one query so the two counts come from the
# same snapshot of the graph.
_PROFILE_PROJECTION = (
    "OPTIONAL MATCH (f:User)-[:FOLLOWS]->(u) "
    "WITH u, count(DISTINCT f) AS followers "
    "OPTIONAL MATCH (u)-[:FOLLOWS]->(g:User) "
    "RETURN u.user_id AS id, u.username AS username, u.name AS name, u.bio AS bio, "
    "u.email AS email, u.joined AS joined, followers, count(DISTINCT g) AS following"
)


def _row_to_dict(columns: tuple[str, ...], row: list[Any]) -> dict[str, Any]:
    return dict(zip(columns, row))


class GraphClient:
    """
    Async FalkorDB client for users and FOLLOWS edges.

    Manages a Redis connection pool; FalkorDB is served over the Redis
    protocol so the pool is a plain redis-py BlockingConnectionPool.
    """

    _VALID_DIRECTIONS = frozenset({"followers", "following"})

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        graph_name: str = "social_graph",
        max_connections: int = 16,
        query_timeout_ms: int = 0,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.graph_name = graph_name
        self.max_connections = max_connections
        self.query_timeout_ms = query_timeout_ms

        self._pool: BlockingConnectionPool | None = None
        self._db: FalkorDB | None = None
        self._graph = None
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize connection pool, select graph, and apply schema."""
        if self._initialized:
            return

        self._pool = BlockingConnectionPool(
            host=self.host,
            port=self.port,
            password=self.password,
            max_connections=self.max_connections,
            timeout=None,
            decode_responses=True,
        )

        self._db = FalkorDB(connection_pool=self._pool)
        self._graph = self._db.select_graph(self.graph_name)

        # Apply schema idempotently
        for stmt in SCHEMA_STATEMENTS:
            try:
                await self._graph.query(stmt)
            except Exception as e:
                # Index already exists is not an error
                if "already indexed" not in str(e).lower():
                    logger.warning(f"Schema statement warning: {stmt} -> {e}")

        self._initialized = True
        logger.info(f"GraphClient initialized: {self.host}:{self.port}/{self.graph_name}")

    async def _query(self, cypher: str, params: dict[str, Any] | None = None):
        """Run one Cypher query, applying the configured timeout if any."""
        if self._graph is None:
            raise RuntimeError("GraphClient not initialized. Call initialize() first.")
        if self.query_timeout_ms:
            return await self._graph.query(cypher, params=params, timeout=self.query_timeout_ms)
        return await self._graph.query(cypher, params=params)

    # ── User operations ─────────────────────────────────────────────────

    async def create_user(
        self,
        username: str,
        name: str,
        email: str | None = None,
        bio: str | None = None,
        joined: float | None = None,
    ) -> dict[str, Any] | None:
        """
        Create a :User node with the next id from the user_id sequence.

        The username clash check, id allocation and node creation run as one
        query, so two concurrent registrations of the same username cannot
        both succeed.

        Returns:
            The stored user attributes, or None if the username is taken.
        """
        ts = joined if joined is not None else time.time()
        result = await self._query(
            "OPTIONAL MATCH (other:User {username_key: $key}) "
            "WITH count(other) AS clashes "
            "WHERE clashes = 0 "
            "MERGE (seq:Sequence {name: $seq}) "
            "ON CREATE SET seq.value = 0 "
            "SET seq.value = seq.value + 1 "
            "CREATE (u:User {user_id: seq.value, username: $username, username_key: $key, "
            "name: $name, email: $email, bio: $bio, joined: $ts}) "
            "RETURN u.user_id, u.username, u.name, u.bio, u.email, u.joined",
            params={
                "key": username_key(username),
                "seq": USER_ID_SEQUENCE,
                "username": username,
                "name": name,
                # FalkorDB rejects null property values, store empty strings
                "email": email or "",
                "bio": bio or "",
                "ts": ts,
            },
        )
        if not result.result_set:
            return None
        return _row_to_dict(_USER_COLUMNS, result.result_set[0])

    async def update_user(
        self,
        user_id: int,
        username: str,
        name: str,
        email: str | None = None,
        bio: str | None = None,
    ) -> bool:
        """
        Update mutable user attributes. Edges are untouched.

        ``email``/``bio`` of None keep the stored value.

        Returns:
            True if the user was updated, False if the user does not exist or
            another user already holds the username.
        """
        result = await self._query(
            "MATCH (u:User {user_id: $id}) "
            "OPTIONAL MATCH (other:User {username_key: $key}) WHERE other.user_id <> $id "
            "WITH u, count(other) AS clashes "
            "WHERE clashes = 0 "
            "SET u.username = $username, u.username_key = $key, u.name = $name, "
            "u.email = coalesce($email, u.email), u.bio = coalesce($bio, u.bio) "
            "RETURN u.user_id",
            params={
                "id": user_id,
                "key": username_key(username),
                "username": username,
                "name": name,
                "email": email,
                "bio": bio,
            },
        )
        return bool(result.result_set)

    async def get_profile(self, user_id: int) -> dict[str, Any] | None:
        """Get user attributes with follower/following counts, or None."""
        result = await self._query(
            f"MATCH (u:User {{user_id: $id}}) {_PROFILE_PROJECTION}",
            params={"id": user_id},
        )
        if not result.result_set:
            return None
        return _row_to_dict(_PROFILE_COLUMNS, result.result_set[0])

    async def find_profile_by_username(self, username: str) -> dict[str, Any] | None:
        """Case-insensitive username lookup, with counts."""
        result = await self._query(
            f"MATCH (u:User {{username_key: $key}}) {_PROFILE_PROJECTION}",
            params={"key": username_key(username)},
        )
        if not result.result_set:
            return None
        return _row_to_dict(_PROFILE_COLUMNS, result.result_set[0])

    async def list_profiles(self) -> list[dict[str, Any]]:
        """All users with counts, ordered by id ascending."""
        result = await self._query(f"MATCH (u:User) {_PROFILE_PROJECTION} ORDER BY id")
        return [_row_to_dict(_PROFILE_COLUMNS, row) for row in result.result_set]

    async def existing_user_ids(self, user_ids: list[int]) -> set[int]:
        """Return the subset of ``user_ids`` that have a :User node."""
        result = await self._query(
            "MATCH (u:User) WHERE u.user_id IN $ids RETURN u.user_id",
            params={"ids": user_ids},
        )
        return {int(row[0]) for row in result.result_set}

    # ── Edge operations (single-query, safe for concurrent calls) ───────

    async def follow(self, follower_id: int, followee_id: int, created_at: float | None = None) -> dict[str, Any] | None:
        """
        Create the FOLLOWS edge if absent (MERGE = idempotent).

        Both users are MATCHed in the same query, so a missing user produces
        no rows and no edge.

        Returns:
            {"actor_username": <follower username>, "created": bool}, or None
            if either user does not exist.

        Raises:
            ValueError: If follower_id == followee_id.
        """
        if follower_id == followee_id:
            raise ValueError("Cannot create a FOLLOWS edge from a user to itself")

        ts = created_at if created_at is not None else time.time()
        result = await self._query(
            "MATCH (a:User {user_id: $src}), (b:User {user_id: $dst}) "
            "MERGE (a)-[e:FOLLOWS]->(b) "
            "ON CREATE SET e.created_at = $ts "
            "RETURN a.username, e.created_at = $ts",
            params={"src": follower_id, "dst": followee_id, "ts": ts},
        )
        if not result.result_set:
            return None
        row = result.result_set[0]
        return {"actor_username": row[0], "created": bool(row[1])}

    async def unfollow(self, follower_id: int, followee_id: int) -> str | None:
        """
        Delete the FOLLOWS edge between two users.

        Returns:
            The follower's username if an edge was deleted, None if no edge
            existed (or either user is missing).
        """
        result = await self._query(
            "MATCH (a:User {user_id: $src})-[e:FOLLOWS]->(b:User {user_id: $dst}) "
            "DELETE e "
            "RETURN a.username, count(*)",
            params={"src": follower_id, "dst": followee_id},
        )
        if not result.result_set or int(result.result_set[0][1]) == 0:
            return None
        return result.result_set[0][0]

    async def is_following(self, follower_id: int, followee_id: int) -> bool:
        """Check whether the FOLLOWS edge exists."""
        result = await self._query(
            "MATCH (:User {user_id: $src})-[e:FOLLOWS]->(:User {user_id: $dst}) RETURN count(e)",
            params={"src": follower_id, "dst": followee_id},
        )
        return bool(result.result_set) and int(result.result_set[0][0]) > 0

    # ── Neighbour reads (concurrent, no locks) ──────────────────────────

    async def list_neighbours(self, user_id: int, direction: Direction) -> list[dict[str, Any]] | None:
        """
        Direct neighbours of a user, ordered by username ascending.

        Args:
            user_id: The user whose neighbours are listed
            direction: "followers" (incoming edges) or "following" (outgoing)

        Returns:
            List of user summaries (possibly empty), or None if the user
            does not exist.
        """
        if direction not in self._VALID_DIRECTIONS:
            raise ValueError(f"Invalid direction: {direction!r}. Must be one of: {', '.join(sorted(self._VALID_DIRECTIONS))}")

        pattern = "(n:User)-[:FOLLOWS]->(u)" if direction == "followers" else "(u)-[:FOLLOWS]->(n:User)"

        # OPTIONAL MATCH keeps one all-null row for an existing user with no
        # neighbours; a missing user yields no rows at all.
        result = await self._query(
            f"MATCH (u:User {{user_id: $id}}) OPTIONAL MATCH {pattern} "
            "RETURN n.user_id, n.username, n.name, n.bio "
            "ORDER BY n.username, n.user_id",
            params={"id": user_id},
        )
        if not result.result_set:
            return None
        return [_row_to_dict(_SUMMARY_COLUMNS, row) for row in result.result_set if row[0] is not None]

    # ── Diagnostics ─────────────────────────────────────────────────────

    async def find_self_loops(self, limit: int = 1000) -> list[int]:
        """User ids with a FOLLOWS edge to themselves (should always be empty)."""
        result = await self._query(
            "MATCH (u:User)-[:FOLLOWS]->(u) RETURN u.user_id LIMIT $lim",
            params={"lim": limit},
        )
        return [int(row[0]) for row in result.result_set]

    async def find_duplicate_username_keys(self, limit: int = 1000) -> list[dict[str, Any]]:
        """Username keys held by more than one user."""
        result = await self._query(
            "MATCH (u:User) WITH u.username_key AS key, collect(u.user_id) AS ids "
            "WHERE size(ids) > 1 RETURN key, ids LIMIT $lim",
            params={"lim": limit},
        )
        return [{"username_key": row[0], "user_ids": [int(i) for i in row[1]]} for row in result.result_set]

    async def find_users_missing_username_key(self, limit: int = 1000, batch_size: int = 1000) -> list[int]:
        """
        User ids whose username_key is absent or out of sync with username.

        The expected key is computed with username_key() rather than in Cypher,
        since toLower() does not casefold (German sharp s keys as "ss").
        """
        mismatched: list[int] = []
        skip = 0
        while len(mismatched) < limit:
            result = await self._query(
                "MATCH (u:User) RETURN u.user_id, u.username, u.username_key "
                "ORDER BY u.user_id SKIP $skip LIMIT $lim",
                params={"skip": skip, "lim": batch_size},
            )
            rows = result.result_set
            for user_id, username, stored_key in rows:
                if stored_key is None or stored_key != username_key(username or ""):
                    mismatched.append(int(user_id))
            if len(rows) < batch_size:
                break
            skip += batch_size
        return mismatched[:limit]

    async def get_graph_stats(self) -> dict[str, Any]:
        """Get graph statistics for health checks."""
        try:
            user_result = await self._query("MATCH (u:User) RETURN count(u)")
            edge_result = await self._query("MATCH ()-[e:FOLLOWS]->() RETURN count(e)")

            user_count = user_result.result_set[0][0] if user_result.result_set else 0
            follows_count = edge_result.result_set[0][0] if edge_result.result_set else 0

            return {
                "graph_name": self.graph_name,
                "user_count": int(user_count),
                "follows_count": int(follows_count),
                "status": "operational",
            }
        except Exception as e:
            logger.error(f"Failed to get graph stats: {e}")
            return {
                "graph_name": self.graph_name,
                "status": "error",
                "error": str(e),
            }

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            try:
                await self._pool.aclose()
                logger.info("GraphClient connection pool closed")
            except Exception as e:
                logger.warning(f"Error closing GraphClient pool: {e}")
            finally:
                self._pool = None
                self._db = None
                self._graph = None
                self._initialized = False
