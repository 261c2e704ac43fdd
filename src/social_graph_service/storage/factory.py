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
Notification sink factory for the Social Graph Service.

Creates the local aiosqlite notification log, or an HTTP client for a remote
notification service when one is configured.
"""

import logging

from ..config import NotificationSettings, settings
from .notification_client import NotificationServiceClient
from .notification_log import NotificationLog

logger = logging.getLogger(__name__)


async def create_notification_log(db_path: str | None = None) -> NotificationLog:
    """
    Create and initialize the local notification log.

    Args:
        db_path: SQLite file (defaults to ``settings.notification_db_path``)
    """
    path = db_path or str(settings.notification_db_path)
    log = NotificationLog(path)
    await log.initialize()
    return log


async def create_notification_sink(
    local_log: NotificationLog | None = None,
    config: NotificationSettings | None = None,
) -> NotificationLog | NotificationServiceClient:
    """
    Create the sink the notification emitter delivers to.

    Returns:
        A NotificationServiceClient when ``service_url`` is configured,
        otherwise the local NotificationLog.
    """
    config = config or settings.notifications

    if config.service_url:
        client = NotificationServiceClient(config.service_url, timeout=config.request_timeout)
        logger.info(f"Notifications delivered to remote service: {config.service_url}")
        return client

    log = local_log or await create_notification_log()
    logger.info(f"Notifications delivered to local log: {log.db_path}")
    return log
