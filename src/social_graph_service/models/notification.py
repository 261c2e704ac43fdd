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

"""Notification event models for follow/unfollow activity."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class NotificationKind(str, Enum):
    """What the actor did to the recipient."""

    FOLLOW = "follow"
    UNFOLLOW = "unfollow"


@dataclass
class NotificationEvent:
    """A single follow/unfollow notification addressed to one recipient."""

    recipient_id: int
    actor_id: int
    kind: NotificationKind

    # Snapshot of the actor's username when the event was emitted
    actor_username: str

    created_at: float = field(default_factory=time.time)
    is_read: bool = False

    # Assigned by the notification log on append
    id: int | None = None

    @property
    def created_at_iso(self) -> str:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "kind": self.kind.value,
            "actor_username": self.actor_username,
            "created_at": self.created_at,
            "is_read": self.is_read,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationEvent":
        """Create instance from dictionary."""
        return cls(
            id=data.get("id"),
            recipient_id=int(data["recipient_id"]),
            actor_id=int(data["actor_id"]),
            kind=NotificationKind(data["kind"]),
            actor_username=data.get("actor_username", ""),
            created_at=float(data.get("created_at", time.time())),
            is_read=bool(data.get("is_read", False)),
        )
