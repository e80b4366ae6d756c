"""Graph store connection and transaction management.

Implements a singleton driver pattern with the official neo4j Python
driver (AsyncGraphDatabase). Every repository operation opens its own
session and runs exactly one explicit transaction through GraphSession.

Transactions are single-attempt: the driver's managed execute_read /
execute_write helpers retry transient failures, so they are not used
here. Store errors propagate to the caller unmodified.
"""

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, TypeVar

from neo4j import READ_ACCESS, WRITE_ACCESS, AsyncDriver, AsyncGraphDatabase, AsyncTransaction

from eventreg.config import get_settings

T = TypeVar("T")

TransactionWork = Callable[..., Awaitable[T]]


class Neo4jConnection:
    """Singleton graph store connection manager."""

    _driver: AsyncDriver | None = None

    @classmethod
    async def get_driver(cls) -> AsyncDriver:
        """Get or create the driver instance."""
        if cls._driver is None:
            settings = get_settings()
            cls._driver = AsyncGraphDatabase.driver(
                settings.NEO4J_URL,
                auth=(settings.NEO4J_USERNAME, settings.NEO4J_PASSWORD),
            )
        return cls._driver

    @classmethod
    async def close(cls) -> None:
        """Close the driver connection."""
        if cls._driver is not None:
            await cls._driver.close()
            cls._driver = None

    @classmethod
    async def verify_connectivity(cls) -> bool:
        """Verify the database connection is working."""
        driver = await cls.get_driver()
        try:
            await driver.verify_connectivity()
            return True
        except Exception:
            return False


@asynccontextmanager
async def get_session(access_mode: str = WRITE_ACCESS) -> AsyncGenerator:
    """Get a driver session for database operations.

    The session is released when the block exits.

    Usage:
        async with get_session(READ_ACCESS) as session:
            result = await session.run("MATCH (e:Event) RETURN e LIMIT 1")
    """
    settings = get_settings()
    driver = await Neo4jConnection.get_driver()
    session = driver.session(
        database=settings.NEO4J_DATABASE,
        default_access_mode=access_mode,
    )
    try:
        yield session
    finally:
        await session.close()


class GraphSession:
    """One unit of work against the graph store.

    Wraps a driver session and runs a single explicit transaction per
    call to execute(). The work function receives the transaction as its
    first argument; it is committed when the function returns and rolled
    back when it raises.
    """

    def __init__(self, session):
        self._session = session

    async def execute(self, work: TransactionWork, *args: Any, **kwargs: Any) -> Any:
        tx = await self._session.begin_transaction()
        try:
            result = await work(tx, *args, **kwargs)
        except BaseException:
            # close() on an open transaction rolls it back
            await tx.close()
            raise
        await tx.commit()
        return result


@asynccontextmanager
async def open_graph_session(access_mode: str = WRITE_ACCESS) -> AsyncGenerator[GraphSession, None]:
    """Open a GraphSession scoped to the block."""
    async with get_session(access_mode) as session:
        yield GraphSession(session)


async def read_transaction(work: TransactionWork, *args: Any, **kwargs: Any) -> Any:
    """Run work in a read transaction on a fresh session."""
    async with open_graph_session(READ_ACCESS) as graph:
        return await graph.execute(work, *args, **kwargs)


async def write_transaction(work: TransactionWork, *args: Any, **kwargs: Any) -> Any:
    """Run work in a write transaction on a fresh session."""
    async with open_graph_session(WRITE_ACCESS) as graph:
        return await graph.execute(work, *args, **kwargs)


async def allocate_ids(tx: AsyncTransaction, sequence: str, count: int = 1) -> list[int]:
    """Reserve count consecutive ids from a store-side counter.

    The counter node is locked by the SET for the rest of the enclosing
    transaction, so concurrent allocations are serialized by the store.

    Args:
        tx: The open transaction.
        sequence: Counter name, conventionally the node label.
        count: Number of ids to reserve.

    Returns:
        The reserved ids in ascending order.
    """
    if count <= 0:
        return []

    settings = get_settings()
    result = await tx.run(
        """
        MERGE (s:Sequence {name: $name})
        ON CREATE SET s.value = $start - 1
        SET s.value = s.value + $count
        RETURN s.value AS last
        """,
        {"name": sequence, "start": settings.ID_SEQUENCE_START, "count": count},
    )
    record = await result.single()
    last = record["last"]
    return list(range(last - count + 1, last + 1))


async def init_graph_schema() -> None:
    """Create the constraints the core relies on.

    Only the id counters are constrained; every other invariant is
    enforced by the repositories.
    """
    async with get_session(WRITE_ACCESS) as session:
        result = await session.run(
            "CREATE CONSTRAINT sequence_name IF NOT EXISTS "
            "FOR (s:Sequence) REQUIRE s.name IS UNIQUE"
        )
        await result.consume()
