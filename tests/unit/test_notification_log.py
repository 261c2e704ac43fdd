# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Tests for the aiosqlite notification log."""

import time

import pytest

from social_graph_service.errors import InvalidArgumentError, NotFoundError
from social_graph_service.models.notification import NotificationEvent, NotificationKind
from social_graph_service.storage.notification_log import SECONDS_PER_DAY, NotificationLog


def _event(recipient=2, actor=1, kind=NotificationKind.FOLLOW, username="alice", created_at=None):
    return NotificationEvent(
        recipient_id=recipient,
        actor_id=actor,
        kind=kind,
        actor_username=username,
        created_at=created_at if created_at is not None else time.time(),
    )


@pytest.mark.asyncio
async def test_initialize_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "notifications.db"
    log = NotificationLog(str(db_path))
    await log.initialize()
    assert db_path.exists()


@pytest.mark.asyncio
async def test_append_assigns_ids(notification_log):
    first = await notification_log.append(_event())
    second = await notification_log.append(_event())

    assert first.id is not None
    assert second.id > first.id
    assert first.is_read is False


@pytest.mark.asyncio
@pytest.mark.parametrize("recipient,actor", [(0, 1), (1, 0), (-3, 2)])
async def test_append_rejects_invalid_ids(notification_log, recipient, actor):
    with pytest.raises(InvalidArgumentError, match="Valid user IDs required"):
        await notification_log.append(_event(recipient=recipient, actor=actor))


@pytest.mark.asyncio
async def test_list_for_user_newest_first(notification_log):
    now = time.time()
    await notification_log.append(_event(username="old", created_at=now - 100))
    await notification_log.append(_event(username="new", created_at=now))
    await notification_log.append(_event(username="middle", created_at=now - 50))
    await notification_log.append(_event(recipient=3, username="elsewhere"))

    events = await notification_log.list_for_user(2)

    assert [e.actor_username for e in events] == ["new", "middle", "old"]
    assert all(e.recipient_id == 2 for e in events)


@pytest.mark.asyncio
async def test_list_for_user_preserves_fields(notification_log):
    ts = 1700000000.5
    await notification_log.append(_event(kind=NotificationKind.UNFOLLOW, username="bob", created_at=ts))

    (event,) = await notification_log.list_for_user(2)

    assert event.kind == NotificationKind.UNFOLLOW
    assert event.actor_id == 1
    assert event.actor_username == "bob"
    assert event.created_at == ts


@pytest.mark.asyncio
async def test_mark_read_and_unread_count(notification_log):
    first = await notification_log.append(_event())
    await notification_log.append(_event())
    assert await notification_log.unread_count(2) == 2

    await notification_log.mark_read(first.id)

    assert await notification_log.unread_count(2) == 1
    events = {e.id: e for e in await notification_log.list_for_user(2)}
    assert events[first.id].is_read is True


@pytest.mark.asyncio
async def test_mark_read_missing_raises_not_found(notification_log):
    with pytest.raises(NotFoundError, match="Notification 12345 not found"):
        await notification_log.mark_read(12345)


@pytest.mark.asyncio
async def test_unread_count_for_unknown_user_is_zero(notification_log):
    assert await notification_log.unread_count(77) == 0


@pytest.mark.asyncio
async def test_prune_only_removes_old_read_events(notification_log):
    now = time.time()
    old = now - 40 * SECONDS_PER_DAY
    old_read = await notification_log.append(_event(username="old-read", created_at=old))
    await notification_log.append(_event(username="old-unread", created_at=old))
    recent_read = await notification_log.append(_event(username="recent-read", created_at=now - SECONDS_PER_DAY))
    await notification_log.mark_read(old_read.id)
    await notification_log.mark_read(recent_read.id)

    assert await notification_log.count_prunable(30, now=now) == 1
    deleted = await notification_log.prune(30, now=now)

    assert deleted == 1
    remaining = [e.actor_username for e in await notification_log.list_for_user(2)]
    assert sorted(remaining) == ["old-unread", "recent-read"]


@pytest.mark.asyncio
async def test_prune_rejects_negative_age(notification_log):
    with pytest.raises(InvalidArgumentError):
        await notification_log.prune(-1)


@pytest.mark.asyncio
async def test_data_survives_new_instance(tmp_path):
    db_path = str(tmp_path / "notifications.db")
    log = NotificationLog(db_path)
    await log.append(_event())

    reopened = NotificationLog(db_path)
    assert len(await reopened.list_for_user(2)) == 1
