#!/usr/bin/env python3
"""Delete read notifications older than the retention window.

Unread notifications are never removed, whatever their age. Equivalent to
``DELETE /api/notifications/cleanup`` but runnable from cron without the
HTTP server.

Usage:
    python scripts/prune_notifications.py [--max-age-days N] [--db-path PATH] [--dry-run]

    # Defaults come from the environment:
    SOCIAL_NOTIFICATIONS_RETENTION_DAYS=30 \
    SOCIAL_NOTIFICATIONS_DB_PATH=/var/lib/social-graph/notifications.db \
        python scripts/prune_notifications.py
"""

import argparse
import asyncio
import logging
import time

from social_graph_service.config import settings
from social_graph_service.storage.notification_log import NotificationLog

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def prune_notifications(db_path: str, max_age_days: int, dry_run: bool) -> int:
    """Prune (or count, in dry-run mode) read notifications past the threshold.

    Returns:
        Number of notifications deleted, or that would be deleted.
    """
    log = NotificationLog(db_path)
    await log.initialize()
    try:
        if dry_run:
            count = await log.count_prunable(max_age_days)
            logger.info(f"[DRY RUN] Would delete {count} read notifications older than {max_age_days} days")
            return count
        return await log.prune(max_age_days)
    finally:
        await log.close()


def main():
    parser = argparse.ArgumentParser(description="Prune read notifications past the retention window")
    parser.add_argument("--max-age-days", type=int, default=settings.notifications.retention_days)
    parser.add_argument("--db-path", default=str(settings.notification_db_path))
    parser.add_argument("--dry-run", action="store_true", help="Count without deleting")
    args = parser.parse_args()

    if args.max_age_days < 0:
        parser.error("--max-age-days must be non-negative")

    start = time.monotonic()
    deleted = asyncio.run(prune_notifications(args.db_path, args.max_age_days, args.dry_run))
    elapsed = time.monotonic() - start

    logger.info(f"Done in {elapsed:.1f}s: {deleted} notifications {'matched' if args.dry_run else 'deleted'}")


if __name__ == "__main__":
    main()
