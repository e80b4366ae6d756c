"""Database module for the event registration core.

Provides:
- Graph store connection and single-attempt transactions
- Mapping between stored properties and domain models
"""

from eventreg.db.neo4j import (
    GraphSession,
    Neo4jConnection,
    allocate_ids,
    get_session,
    init_graph_schema,
    open_graph_session,
    read_transaction,
    write_transaction,
)

__all__ = [
    "GraphSession",
    "Neo4jConnection",
    "allocate_ids",
    "get_session",
    "init_graph_schema",
    "open_graph_session",
    "read_transaction",
    "write_transaction",
]
