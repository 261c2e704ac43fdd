"""
Graph layer for the Social Graph Service.

Provides the FalkorDB-backed follow graph:
- :User nodes keyed by user_id
- :FOLLOWS edges, one per ordered pair, created by MERGE
- Counts derived from live edges at query time
"""

from .client import GraphClient
from .schema import FOLLOWS, USER_LABEL

__all__ = [
    "GraphClient",
    "FOLLOWS",
    "USER_LABEL",
]
