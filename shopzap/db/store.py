"""Durable storage for product histories and scheduled task definitions."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopzap.config import Settings, settings
from shopzap.db.models import Base, ScheduledTask, TrackedProduct
from shopzap.errors import PersistenceError
from shopzap.models import MonitoringTask, ProductHistory

logger = logging.getLogger(__name__)


class PersistedStore(Protocol):
    """Write-through store used by the monitor; every save replaces the whole set."""

    async def load_products(self) -> list[ProductHistory]: ...

    async def save_products(self, products: Iterable[ProductHistory]) -> None: ...

    async def load_tasks(self) -> list[MonitoringTask]: ...

    async def save_tasks(self, tasks: Iterable[MonitoringTask]) -> None: ...

    async def close(self) -> None: ...


class JsonFileStore:
    """
    Single JSON document on disk:

        {"products": [{"id", "history": [...]}], "scheduledTasks": [{"id", "url", "selector", "frequency"}]}

    Writes go to a temporary file that is then renamed over the original.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._document: dict | None = None
        self._lock = asyncio.Lock()

    def _read(self) -> dict:
        if not self.path.exists():
            return {"products": [], "scheduledTasks": []}
        try:
            with open(self.path, encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e
        document.setdefault("products", [])
        document.setdefault("scheduledTasks", [])
        return document

    def _write(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(document, fh, indent=2)
        os.replace(tmp_path, self.path)

    async def _current(self) -> dict:
        if self._document is None:
            self._document = await asyncio.to_thread(self._read)
        return self._document

    async def _replace(self, key: str, items: list[dict]) -> None:
        async with self._lock:
            document = {**await self._current(), key: items}
            try:
                await asyncio.to_thread(self._write, document)
            except OSError as e:
                raise PersistenceError(f"Could not write {self.path}: {e}") from e
            self._document = document

    async def load_products(self) -> list[ProductHistory]:
        document = await self._current()
        try:
            return [ProductHistory.from_dict(item) for item in document["products"]]
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Malformed product entry in {self.path}: {e}") from e

    async def save_products(self, products: Iterable[ProductHistory]) -> None:
        await self._replace("products", [product.to_dict() for product in products])

    async def load_tasks(self) -> list[MonitoringTask]:
        document = await self._current()
        try:
            return [MonitoringTask.from_dict(item) for item in document["scheduledTasks"]]
        except (KeyError, TypeError) as e:
            raise PersistenceError(f"Malformed task entry in {self.path}: {e}") from e

    async def save_tasks(self, tasks: Iterable[MonitoringTask]) -> None:
        await self._replace("scheduledTasks", [task.to_dict() for task in tasks])

    async def close(self) -> None:
        pass


class SqlAlchemyStore:
    """Async SQLAlchemy store; SQLite through aiosqlite unless configured otherwise."""

    def __init__(self, database_url: str):
        self.engine = create_async_engine(database_url)
        self._session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        self._schema_ready = False

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            if not self._schema_ready:
                async with self.engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                self._schema_ready = True
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            raise PersistenceError(f"Database error: {e}") from e

    async def load_products(self) -> list[ProductHistory]:
        async with self._session() as session:
            result = await session.execute(select(TrackedProduct))
            rows = result.scalars().all()
        return [ProductHistory.from_dict({"id": row.identity, "history": row.history}) for row in rows]

    async def save_products(self, products: Iterable[ProductHistory]) -> None:
        rows = [
            TrackedProduct(identity=product.identity, history=product.to_dict()["history"])
            for product in products
        ]
        async with self._session() as session:
            await session.execute(delete(TrackedProduct))
            session.add_all(rows)

    async def load_tasks(self) -> list[MonitoringTask]:
        async with self._session() as session:
            result = await session.execute(select(ScheduledTask).order_by(ScheduledTask.created_at))
            rows = result.scalars().all()
        return [
            MonitoringTask(task_id=row.id, url=row.url, selector=row.selector, schedule=row.frequency)
            for row in rows
        ]

    async def save_tasks(self, tasks: Iterable[MonitoringTask]) -> None:
        rows = [
            ScheduledTask(id=task.task_id, url=task.url, selector=task.selector, frequency=task.schedule)
            for task in tasks
        ]
        async with self._session() as session:
            await session.execute(delete(ScheduledTask))
            session.add_all(rows)

    async def close(self) -> None:
        await self.engine.dispose()


def create_store(config: Settings | None = None) -> PersistedStore:
    """Build the store selected by STORE_BACKEND."""
    config = config or settings
    backend = config.store_backend.lower()
    if backend == "json":
        logger.info(f"Using JSON file store at {config.data_file}")
        return JsonFileStore(config.data_file)
    if backend == "sql":
        logger.info("Using SQL store")
        return SqlAlchemyStore(config.database_url)
    raise ValueError(f"Unknown store backend: {config.store_backend}. Use 'json' or 'sql'.")
