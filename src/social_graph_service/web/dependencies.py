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
FastAPI dependencies for the HTTP interface.

Both dependencies answer 503 when the underlying store never came up, so
routes only deal with domain errors.
"""

import logging

from fastapi import HTTPException

from ..services.relationship_service import RelationshipService
from ..shared_storage import get_shared_notification_log, get_shared_relationship_service
from ..storage.notification_log import NotificationLog

logger = logging.getLogger(__name__)


def get_relationship_service() -> RelationshipService:
    """Get the shared RelationshipService."""
    service = get_shared_relationship_service()
    if service is None:
        raise HTTPException(status_code=503, detail="Graph store not available")
    return service


def get_notification_log() -> NotificationLog:
    """Get the shared local notification log."""
    log = get_shared_notification_log()
    if log is None:
        raise HTTPException(status_code=503, detail="Notification log not available")
    return log
