"""Tests for the best-effort notification emitter."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from social_graph_service.hooks import FollowEvent, HookRegistry, UnfollowEvent
from social_graph_service.models.notification import NotificationKind
from social_graph_service.services.notification_emitter import NotificationEmitter


@pytest.fixture
def sink():
    sink = MagicMock()
    sink.append = AsyncMock(side_effect=lambda event: event)
    return sink


@pytest.mark.asyncio
async def test_emit_delivers_once(sink):
    emitter = NotificationEmitter(sink)

    event = await emitter.emit(2, 1, NotificationKind.FOLLOW, "alice")

    sink.append.assert_awaited_once()
    assert event.recipient_id == 2
    assert event.actor_id == 1
    assert event.kind == NotificationKind.FOLLOW
    assert event.actor_username == "alice"
    assert event.is_read is False


@pytest.mark.asyncio
async def test_emit_swallows_failures_without_retry(sink, caplog):
    sink.append.side_effect = TimeoutError("sink timed out")
    emitter = NotificationEmitter(sink)

    with caplog.at_level("WARNING"):
        result = await emitter.emit(2, 1, NotificationKind.UNFOLLOW, "alice")

    assert result is None
    assert sink.append.await_count == 1
    assert "Failed to deliver unfollow notification" in caplog.text


@pytest.mark.asyncio
async def test_register_maps_hooks_to_recipient_and_actor(sink):
    hooks = HookRegistry()
    NotificationEmitter(sink).register(hooks)

    await hooks.fire_post("post_follow", FollowEvent(follower_id=1, followee_id=2, actor_username="alice"))
    await hooks.fire_post("post_unfollow", UnfollowEvent(follower_id=1, followee_id=2, actor_username="alice"))

    delivered = [call.args[0] for call in sink.append.await_args_list]
    assert [(e.recipient_id, e.actor_id, e.kind) for e in delivered] == [
        (2, 1, NotificationKind.FOLLOW),
        (2, 1, NotificationKind.UNFOLLOW),
    ]
