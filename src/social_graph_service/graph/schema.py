"""
Graph schema for the social follow graph.

Defines the Cypher schema for FalkorDB: node labels, relationship types and
indices. Schema is applied idempotently on startup.

Node Labels:
    :User      - A user record (keyed by user_id, looked up by username_key)
    :Sequence  - Counter node used to allocate user ids (name = "user_id")

Relationship Types:
    :FOLLOWS   - follower -> followee. At most one per ordered pair (MERGE),
                 carries only created_at. Never created from a node to itself.

Indices:
    User(user_id)      - Point lookups and edge endpoints
    User(username_key) - Case-insensitive username lookups and uniqueness checks
    Sequence(name)     - Id allocation
"""

USER_LABEL = "User"
FOLLOWS = "FOLLOWS"
USER_ID_SEQUENCE = "user_id"

# Cypher statements executed idempotently on graph initialization.
# FalkorDB supports CREATE INDEX IF NOT EXISTS syntax.
SCHEMA_STATEMENTS: list[str] = [
    "CREATE INDEX IF NOT EXISTS FOR (u:User) ON (u.user_id)",
    "CREATE INDEX IF NOT EXISTS FOR (u:User) ON (u.username_key)",
    "CREATE INDEX IF NOT EXISTS FOR (s:Sequence) ON (s.name)",
]
