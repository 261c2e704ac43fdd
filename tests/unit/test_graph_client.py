"""
Unit tests for GraphClient.

Tests the FalkorDB graph client with mocked FalkorDB/Redis connections.
Validates user and edge queries, parameter binding, and schema initialization.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def _result(rows):
    result = MagicMock()
    result.result_set = rows
    return result


@pytest.fixture
def mock_graph():
    """Create a mock FalkorDB graph."""
    graph = AsyncMock()
    graph.query.return_value = _result([])
    return graph


@pytest.fixture
def client(mock_graph):
    """GraphClient wired to the mock graph without opening a pool."""
    from social_graph_service.graph.client import GraphClient

    client = GraphClient()
    client._graph = mock_graph
    client._initialized = True
    return client


class TestGraphClientInit:
    """Test GraphClient initialization and schema application."""

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.BlockingConnectionPool")
    @patch("social_graph_service.graph.client.FalkorDB")
    async def test_initialize_creates_pool_and_applies_schema(self, mock_falkordb_cls, mock_pool_cls):
        from social_graph_service.graph.client import GraphClient
        from social_graph_service.graph.schema import SCHEMA_STATEMENTS

        mock_pool_instance = MagicMock()
        mock_pool_instance.aclose = AsyncMock()
        mock_pool_cls.return_value = mock_pool_instance

        mock_graph_instance = AsyncMock()
        mock_db_instance = MagicMock()
        mock_db_instance.select_graph.return_value = mock_graph_instance
        mock_falkordb_cls.return_value = mock_db_instance

        client = GraphClient(host="testhost", port=6380, graph_name="test_graph", max_connections=8)
        await client.initialize()

        mock_pool_cls.assert_called_once_with(
            host="testhost",
            port=6380,
            password=None,
            max_connections=8,
            timeout=None,
            decode_responses=True,
        )
        mock_db_instance.select_graph.assert_called_once_with("test_graph")
        assert mock_graph_instance.query.call_count == len(SCHEMA_STATEMENTS)

        # Idempotent: second call is no-op
        await client.initialize()
        assert mock_graph_instance.query.call_count == len(SCHEMA_STATEMENTS)

    @pytest.mark.asyncio
    @patch("social_graph_service.graph.client.BlockingConnectionPool")
    @patch("social_graph_service.graph.client.FalkorDB")
    async def test_initialize_handles_existing_index(self, mock_falkordb_cls, mock_pool_cls):
        """Schema statements that fail with 'already indexed' are silently ignored."""
        from social_graph_service.graph.client import GraphClient

        mock_pool_cls.return_value = MagicMock(aclose=AsyncMock())
        mock_graph = AsyncMock()
        mock_graph.query.side_effect = Exception("Attribute already indexed")
        mock_db = MagicMock()
        mock_db.select_graph.return_value = mock_graph
        mock_falkordb_cls.return_value = mock_db

        client = GraphClient()
        await client.initialize()  # Should not raise

    @pytest.mark.asyncio
    async def test_query_requires_initialize(self):
        from social_graph_service.graph.client import GraphClient

        with pytest.raises(RuntimeError, match="not initialized"):
            await GraphClient().is_following(1, 2)

    @pytest.mark.asyncio
    async def test_query_timeout_passed_when_configured(self, client, mock_graph):
        client.query_timeout_ms = 250
        await client.is_following(1, 2)
        assert mock_graph.query.call_args[1]["timeout"] == 250

    @pytest.mark.asyncio
    async def test_close_releases_pool(self, client):
        pool = MagicMock()
        pool.aclose = AsyncMock()
        client._pool = pool

        await client.close()

        pool.aclose.assert_awaited_once()
        assert client._graph is None
        assert client._initialized is False


class TestGraphClientUsers:
    """Test user node queries."""

    @pytest.mark.asyncio
    async def test_create_user_allocates_id_and_checks_clash(self, client, mock_graph):
        mock_graph.query.return_value = _result([[1, "Alice", "Alice A", "", "a@example.com", 1700000000.0]])

        row = await client.create_user("Alice", "Alice A", email="a@example.com", joined=1700000000.0)

        cypher = mock_graph.query.call_args[0][0]
        params = mock_graph.query.call_args[1]["params"]
        assert "MERGE (seq:Sequence" in cypher
        assert "clashes = 0" in cypher
        assert params["key"] == "alice"
        assert params["bio"] == ""
        assert row["id"] == 1
        assert row["username"] == "Alice"

    @pytest.mark.asyncio
    async def test_create_user_returns_none_when_username_taken(self, client, mock_graph):
        mock_graph.query.return_value = _result([])
        assert await client.create_user("alice", "Alice") is None

    @pytest.mark.asyncio
    async def test_update_user_reports_result(self, client, mock_graph):
        mock_graph.query.return_value = _result([[3]])
        assert await client.update_user(3, "carol", "Carol") is True

        params = mock_graph.query.call_args[1]["params"]
        assert params["id"] == 3
        assert params["email"] is None

        mock_graph.query.return_value = _result([])
        assert await client.update_user(3, "carol", "Carol") is False

    @pytest.mark.asyncio
    async def test_get_profile_counts_in_one_query(self, client, mock_graph):
        mock_graph.query.return_value = _result([[7, "bob", "Bob", "", "", 1.0, 4, 2]])

        profile = await client.get_profile(7)

        assert mock_graph.query.call_count == 1
        cypher = mock_graph.query.call_args[0][0]
        assert "count(DISTINCT f) AS followers" in cypher
        assert "count(DISTINCT g) AS following" in cypher
        assert profile["followers"] == 4
        assert profile["following"] == 2

    @pytest.mark.asyncio
    async def test_get_profile_missing_returns_none(self, client):
        assert await client.get_profile(404) is None

    @pytest.mark.asyncio
    async def test_find_profile_by_username_uses_key(self, client, mock_graph):
        await client.find_profile_by_username("  BoB ")
        assert mock_graph.query.call_args[1]["params"]["key"] == "bob"

    @pytest.mark.asyncio
    async def test_existing_user_ids(self, client, mock_graph):
        mock_graph.query.return_value = _result([[1], [3]])
        assert await client.existing_user_ids([1, 2, 3]) == {1, 3}


class TestGraphClientEdges:
    """Test FOLLOWS edge queries."""

    @pytest.mark.asyncio
    async def test_follow_uses_merge(self, client, mock_graph):
        mock_graph.query.return_value = _result([["alice", True]])

        result = await client.follow(1, 2, created_at=1700000000.0)

        call_args = mock_graph.query.call_args
        assert "MERGE (a)-[e:FOLLOWS]->(b)" in call_args[0][0]
        assert "ON CREATE SET" in call_args[0][0]
        assert call_args[1]["params"] == {"src": 1, "dst": 2, "ts": 1700000000.0}
        assert result == {"actor_username": "alice", "created": True}

    @pytest.mark.asyncio
    async def test_follow_missing_user_returns_none(self, client, mock_graph):
        mock_graph.query.return_value = _result([])
        assert await client.follow(1, 99) is None

    @pytest.mark.asyncio
    async def test_follow_self_rejected_before_query(self, client, mock_graph):
        with pytest.raises(ValueError):
            await client.follow(5, 5)
        mock_graph.query.assert_not_called()

    @pytest.mark.asyncio
    async def test_unfollow_deletes_edge(self, client, mock_graph):
        mock_graph.query.return_value = _result([["alice", 1]])

        assert await client.unfollow(1, 2) == "alice"
        assert "DELETE e" in mock_graph.query.call_args[0][0]

    @pytest.mark.asyncio
    async def test_unfollow_without_edge_returns_none(self, client, mock_graph):
        mock_graph.query.return_value = _result([])
        assert await client.unfollow(1, 2) is None

    @pytest.mark.asyncio
    async def test_is_following(self, client, mock_graph):
        mock_graph.query.return_value = _result([[1]])
        assert await client.is_following(1, 2) is True
        mock_graph.query.return_value = _result([[0]])
        assert await client.is_following(1, 2) is False


class TestGraphClientNeighbours:
    """Test follower/following listings."""

    @pytest.mark.asyncio
    async def test_followers_direction_and_ordering(self, client, mock_graph):
        mock_graph.query.return_value = _result([[2, "amy", "Amy", ""], [3, "zed", "Zed", "hi"]])

        rows = await client.list_neighbours(1, "followers")

        cypher = mock_graph.query.call_args[0][0]
        assert "(n:User)-[:FOLLOWS]->(u)" in cypher
        assert "ORDER BY n.username" in cypher
        assert [r["username"] for r in rows] == ["amy", "zed"]

    @pytest.mark.asyncio
    async def test_following_direction(self, client, mock_graph):
        await client.list_neighbours(1, "following")
        assert "(u)-[:FOLLOWS]->(n:User)" in mock_graph.query.call_args[0][0]

    @pytest.mark.asyncio
    async def test_user_without_edges_returns_empty_list(self, client, mock_graph):
        mock_graph.query.return_value = _result([[None, None, None, None]])
        assert await client.list_neighbours(1, "followers") == []

    @pytest.mark.asyncio
    async def test_missing_user_returns_none(self, client, mock_graph):
        mock_graph.query.return_value = _result([])
        assert await client.list_neighbours(1, "following") is None

    @pytest.mark.asyncio
    async def test_invalid_direction_rejected(self, client):
        with pytest.raises(ValueError, match="Invalid direction"):
            await client.list_neighbours(1, "sideways")


class TestGraphClientDiagnostics:
    """Test stats and integrity queries."""

    @pytest.mark.asyncio
    async def test_graph_stats(self, client, mock_graph):
        mock_graph.query.side_effect = [_result([[5]]), _result([[8]])]

        stats = await client.get_graph_stats()

        assert stats["user_count"] == 5
        assert stats["follows_count"] == 8
        assert stats["status"] == "operational"

    @pytest.mark.asyncio
    async def test_graph_stats_reports_error(self, client, mock_graph):
        mock_graph.query.side_effect = ConnectionError("refused")
        stats = await client.get_graph_stats()
        assert stats["status"] == "error"

    @pytest.mark.asyncio
    async def test_duplicate_username_keys(self, client, mock_graph):
        mock_graph.query.return_value = _result([["alice", [1, 4]]])
        assert await client.find_duplicate_username_keys() == [{"username_key": "alice", "user_ids": [1, 4]}]

    @pytest.mark.asyncio
    async def test_casefolded_username_keys_are_in_sync(self, client, mock_graph):
        mock_graph.query.return_value = _result(
            [
                [1, "Straße", "strasse"],
                [2, "ΣΟΦΟΣ", "σοφοσ"],
                [3, " Alice ", "alice"],
            ]
        )
        assert await client.find_users_missing_username_key() == []

    @pytest.mark.asyncio
    async def test_missing_or_stale_username_keys_reported(self, client, mock_graph):
        mock_graph.query.return_value = _result(
            [
                [1, "Straße", "straße"],
                [2, "bob", None],
                [3, "carol", "carol"],
            ]
        )
        assert await client.find_users_missing_username_key() == [1, 2]

    @pytest.mark.asyncio
    async def test_username_key_scan_pages_until_short_batch(self, client, mock_graph):
        mock_graph.query.side_effect = [
            _result([[1, "amy", "amy"], [2, "ben", None]]),
            _result([[3, "cat", None]]),
        ]

        assert await client.find_users_missing_username_key(batch_size=2) == [2, 3]
        assert [c[1]["params"]["skip"] for c in mock_graph.query.call_args_list] == [0, 2]
