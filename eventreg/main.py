"""Operational FastAPI application for the event registration core.

Serves health probes and owns the graph driver lifecycle. Domain
routes live in the calling service; the error handlers registered here
show how each error kind maps to an HTTP status.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventreg.config import get_settings
from eventreg.db.neo4j import Neo4jConnection, init_graph_schema
from eventreg.errors import (
    ConflictError,
    EventRegError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    TransportError,
)
from eventreg.models import HealthResponse

logger = logging.getLogger(__name__)

# Most specific first; subclasses share their parent's status
ERROR_STATUS_CODES: list[tuple[type[EventRegError], int]] = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (InvalidInputError, 422),
    (ForbiddenError, 403),
    (TransportError, 502),
]


def status_code_for(error: EventRegError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 500


async def eventreg_error_handler(request: Request, exc: EventRegError) -> JSONResponse:
    """Translate a domain error into a JSON response."""
    return JSONResponse(status_code=status_code_for(exc), content={"detail": exc.message})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Manage application lifespan events.

    Verifies the graph connection, creates the id-counter constraint and
    closes the driver on shutdown.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    logger.info(f"Connecting to graph store at {settings.NEO4J_URL}")
    connected = await Neo4jConnection.verify_connectivity()
    if connected:
        logger.info("Successfully connected to graph store")
        await init_graph_schema()
        logger.info("Graph schema constraints ensured")
    else:
        logger.warning("Could not verify graph store connection; schema setup skipped")

    yield

    logger.info("Shutting down, closing graph store connection...")
    await Neo4jConnection.close()
    logger.info("Graph store connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description="""
# Event Registration Core

Domain and data layer for event registration backed by a property graph.

## Node Labels

- `User`: organizers and staff
- `Event`: events, owned through a `CREATED` edge
- `Form`: one registration schema per event (`HAS_FORM`)
- `ParticipantData`: registrant submissions (`HAS_PARTICIPANT_DATA`)

This service exposes operational endpoints only.
        """,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    app.add_exception_handler(EventRegError, eventreg_error_handler)

    return app


# Create the application instance
app = create_app()


@app.get("/", tags=["root"])
async def root() -> dict:
    """Root endpoint returning API information."""
    settings = get_settings()
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "openapi": "/openapi.json",
    }


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Health check endpoint for monitoring and load balancers."""
    settings = get_settings()

    try:
        db_connected = await Neo4jConnection.verify_connectivity()
        db_status = "connected" if db_connected else "disconnected"
    except Exception:
        logger.exception("Health check failed")
        db_status = "error"

    return HealthResponse(
        status="healthy" if db_status == "connected" else "degraded",
        database=db_status,
        version=settings.APP_VERSION,
    )


@app.get("/ready", tags=["health"])
async def readiness_check() -> dict:
    """Readiness check for container orchestrators."""
    try:
        connected = await Neo4jConnection.verify_connectivity()
    except Exception as e:
        return {"status": "not ready", "reason": str(e)}
    if connected:
        return {"status": "ready"}
    return {"status": "not ready", "reason": "database disconnected"}


@app.get("/live", tags=["health"])
async def liveness_check() -> dict:
    """Liveness check for container orchestrators."""
    return {"status": "alive"}
