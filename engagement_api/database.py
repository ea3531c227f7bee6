"""
Async SQLAlchemy access to the PostgreSQL engagement store (asyncpg driver).

The engine and its connection pool are created once at startup
(AnalyticsStore.start) and disposed at shutdown (AnalyticsStore.stop).
Handlers receive the store through the ``get_store`` dependency.
"""
import asyncio
import logging
import time
from typing import Any, Optional, Union

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from engagement_api.config import settings
from engagement_api.errors import StoreError
from engagement_api.queries import AnalyticsQuery
from engagement_api.telemetry import QUERY_ERRORS_TOTAL, QUERY_LATENCY

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Declarative base for the tables in models.py.

    The API only reads through the SQL in queries.py; the ORM tables are used
    to create and populate the schema in development (scripts/seed_data.py)
    and in the integration tests.
    """


def build_engine(url: Union[URL, str, None] = None) -> AsyncEngine:
    return create_async_engine(
        url or settings.postgres_url,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout_seconds,
        # asyncpg cancels the statement and raises TimeoutError past this
        connect_args={"command_timeout": settings.query_timeout_seconds},
        echo=False,
    )


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig)
    return str(exc) or exc.__class__.__name__


class AnalyticsStore:
    """Pooled, read-only query execution against the engagement store."""

    def __init__(
        self,
        url: Union[URL, str, None] = None,
        engine: Optional[AsyncEngine] = None,
    ) -> None:
        self._url = url
        self._engine = engine

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    async def start(self) -> None:
        if self._engine is None:
            self._engine = build_engine(self._url)
        logger.info("Analytics store pool ready (size=%d)", settings.pool_size)

    async def stop(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Analytics store pool disposed")

    async def fetch_all(self, query: AnalyticsQuery) -> list[dict[str, Any]]:
        """
        Run ``query`` on one pooled connection and return its rows as dicts.

        The connection goes back to the pool whether or not the query
        succeeds. Any driver, pool or timeout failure is raised as StoreError.
        """
        if self._engine is None:
            raise StoreError("Analytics store is not started", query.intent)

        started = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text(query.sql), query.params)
                rows = [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            QUERY_ERRORS_TOTAL.labels(intent=query.intent).inc()
            raise StoreError(_error_message(exc), query.intent) from exc
        finally:
            QUERY_LATENCY.labels(intent=query.intent).observe(
                time.perf_counter() - started
            )

        logger.debug("Query %s returned %d rows", query.intent, len(rows))
        return rows


def get_store(request: Request) -> AnalyticsStore:
    """FastAPI dependency returning the store opened by the app lifespan."""
    return request.app.state.store
