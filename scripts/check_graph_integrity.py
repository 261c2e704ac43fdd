#!/usr/bin/env python3
"""Report follow-graph integrity problems.

Checks for conditions the service never produces but an out-of-band write
could:
- FOLLOWS edges from a user to itself
- users whose username_key is missing or out of sync with username
- username keys shared by more than one user

Exits non-zero when any problem is found.

Usage:
    SOCIAL_FALKORDB_HOST=localhost SOCIAL_FALKORDB_PORT=6379 \
        python scripts/check_graph_integrity.py [--limit N]
"""

import argparse
import asyncio
import logging
import sys

from social_graph_service.graph.factory import create_graph_client

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


async def check_graph_integrity(limit: int) -> dict[str, list]:
    """Run every integrity check against the configured graph."""
    client = await create_graph_client()
    try:
        stats = await client.get_graph_stats()
        logger.info(f"Graph '{stats['graph_name']}': {stats.get('user_count', '?')} users, {stats.get('follows_count', '?')} follows")

        return {
            "self_loops": await client.find_self_loops(limit=limit),
            "missing_username_keys": await client.find_users_missing_username_key(limit=limit),
            "duplicate_usernames": await client.find_duplicate_username_keys(limit=limit),
        }
    finally:
        await client.close()


def main():
    parser = argparse.ArgumentParser(description="Check the social follow graph for integrity problems")
    parser.add_argument("--limit", type=int, default=1000, help="Maximum rows reported per check (default: 1000)")
    args = parser.parse_args()

    problems = asyncio.run(check_graph_integrity(args.limit))

    found = False
    for check, rows in problems.items():
        if rows:
            found = True
            logger.warning(f"{check}: {len(rows)} found")
            for row in rows:
                logger.warning(f"  {row}")
        else:
            logger.info(f"{check}: none")

    sys.exit(1 if found else 0)


if __name__ == "__main__":
    main()
