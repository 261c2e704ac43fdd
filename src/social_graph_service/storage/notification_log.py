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

"""
Notification log database manager.

Append-only SQLite store of follow/unfollow notification events, queryable
by recipient, markable read, and prunable by age (read events only).
Async operations using aiosqlite.
"""

import logging
import os
import time

import aiosqlite

from ..errors import InvalidArgumentError, NotFoundError, StoreUnavailableError
from ..models.notification import NotificationEvent

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class NotificationLog:
    """Async SQLite database manager for notification events."""

    def __init__(self, db_path: str):
        """
        Initialize notification log.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._initialized = False

    async def initialize(self):
        """Initialize database schema if not exists."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    recipient_id INTEGER NOT NULL,
                    actor_id INTEGER NOT NULL,
                    kind TEXT NOT NULL,
                    actor_username TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    is_read INTEGER NOT NULL DEFAULT 0
                )
            """
            )

            await db.execute("CREATE INDEX IF NOT EXISTS idx_recipient_created ON notifications(recipient_id, created_at)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_read_created ON notifications(is_read, created_at)")

            await db.commit()

        self._initialized = True
        logger.info(f"Notification log initialized at {self.db_path}")

    async def append(self, event: NotificationEvent) -> NotificationEvent:
        """
        Store a notification event.

        Args:
            event: Event to store (its id is ignored)

        Returns:
            The stored event with its generated id

        Raises:
            InvalidArgumentError: If recipient or actor ids are not positive
        """
        if event.recipient_id <= 0 or event.actor_id <= 0:
            raise InvalidArgumentError("Valid user IDs required")

        if not self._initialized:
            await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    INSERT INTO notifications
                    (recipient_id, actor_id, kind, actor_username, created_at, is_read)
                    VALUES (?, ?, ?, ?, ?, ?)
                """,
                    (
                        event.recipient_id,
                        event.actor_id,
                        event.kind.value,
                        event.actor_username,
                        event.created_at,
                        int(event.is_read),
                    ),
                )
                await db.commit()
                event_id = cursor.lastrowid
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to append notification: {e}") from e

        logger.info(f"Notification created: user {event.recipient_id} got {event.kind.value} event from {event.actor_id}")

        return NotificationEvent(
            id=event_id,
            recipient_id=event.recipient_id,
            actor_id=event.actor_id,
            kind=event.kind,
            actor_username=event.actor_username,
            created_at=event.created_at,
            is_read=event.is_read,
        )

    async def list_for_user(self, user_id: int) -> list[NotificationEvent]:
        """
        Get notifications addressed to a user, newest first.

        Args:
            user_id: Recipient id

        Returns:
            List of events ordered by created_at descending
        """
        if not self._initialized:
            await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    """
                    SELECT id, recipient_id, actor_id, kind, actor_username, created_at, is_read
                    FROM notifications
                    WHERE recipient_id = ?
                    ORDER BY created_at DESC, id DESC
                """,
                    (user_id,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to list notifications: {e}") from e

        return [
            NotificationEvent.from_dict(
                {
                    "id": row[0],
                    "recipient_id": row[1],
                    "actor_id": row[2],
                    "kind": row[3],
                    "actor_username": row[4],
                    "created_at": row[5],
                    "is_read": bool(row[6]),
                }
            )
            for row in rows
        ]

    async def mark_read(self, event_id: int) -> None:
        """
        Mark a notification as read.

        Raises:
            NotFoundError: If no notification has this id
        """
        if not self._initialized:
            await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("UPDATE notifications SET is_read = 1 WHERE id = ?", (event_id,))
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to mark notification read: {e}") from e

        if updated == 0:
            raise NotFoundError("Notification", event_id)

    async def unread_count(self, user_id: int) -> int:
        """Number of unread notifications for a user."""
        if not self._initialized:
            await self.initialize()

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM notifications WHERE recipient_id = ? AND is_read = 0",
                    (user_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to count unread notifications: {e}") from e

        return row[0] if row else 0

    async def prune(self, max_age_days: int, now: float | None = None) -> int:
        """
        Delete read notifications older than the threshold.

        Unread notifications are never pruned, whatever their age.

        Args:
            max_age_days: Age threshold in days
            now: Reference time (defaults to the current time)

        Returns:
            Number of notifications deleted
        """
        if max_age_days < 0:
            raise InvalidArgumentError("max_age_days must be non-negative")

        if not self._initialized:
            await self.initialize()

        cutoff = (now if now is not None else time.time()) - max_age_days * SECONDS_PER_DAY

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    "DELETE FROM notifications WHERE is_read = 1 AND created_at < ?",
                    (cutoff,),
                )
                await db.commit()
                deleted = cursor.rowcount
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to prune notifications: {e}") from e

        logger.info(f"Cleaned up {deleted} old notifications")
        return deleted

    async def count_prunable(self, max_age_days: int, now: float | None = None) -> int:
        """Number of notifications ``prune`` would delete (for dry runs)."""
        if not self._initialized:
            await self.initialize()

        cutoff = (now if now is not None else time.time()) - max_age_days * SECONDS_PER_DAY

        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute(
                    "SELECT COUNT(*) FROM notifications WHERE is_read = 1 AND created_at < ?",
                    (cutoff,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreUnavailableError(f"Failed to count prunable notifications: {e}") from e

        return row[0] if row else 0

    async def close(self):
        """Close database connections."""
        # aiosqlite doesn't maintain persistent connections, so nothing to close
        pass
