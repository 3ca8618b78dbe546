"""
Person persistence (raw SQL).

`PersonRepository` is the contract handlers depend on.
`PostgresPersonRepository` implements it against one table via an asyncpg pool;
see `persons/memory.py` for the in-memory implementation.

Every operation runs inside a span from the injected `person-repository`
tracer, named after the operation. The span covers only the store call.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager

import asyncpg
from opentelemetry.trace import Span, Tracer

from core import db
from core.errors import PersonNotFoundError, StoreError

from .schemas import Person

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "users"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

_STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


def validate_table_name(table_name: str) -> str:
    name = (table_name or "").strip()
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid table name: {table_name!r}")
    return name


class PersonRepository(abc.ABC):
    table_name: str

    @abc.abstractmethod
    async def ensure_table(self) -> None:
        """Idempotent schema setup; must complete before the first request."""

    @abc.abstractmethod
    async def create(self, name: str, age: int) -> int:
        """Insert a person and return the store-assigned id."""

    @abc.abstractmethod
    async def find_all(self) -> list[Person]:
        ...

    @abc.abstractmethod
    async def find_by_id(self, person_id: int) -> Person:
        """Raise PersonNotFoundError when no row matches."""

    @abc.abstractmethod
    async def update(self, person_id: int, name: str, age: int) -> None:
        """Overwrite name/age. A missing id is a silent no-op."""

    @abc.abstractmethod
    async def delete(self, person_id: int) -> None:
        """Remove the row. A missing id is a silent no-op."""

    @abc.abstractmethod
    async def count(self) -> int:
        ...


class PostgresPersonRepository(PersonRepository):
    def __init__(self, pool: asyncpg.Pool, tracer: Tracer, table_name: str = DEFAULT_TABLE) -> None:
        self._pool = pool
        self._tracer = tracer
        self.table_name = validate_table_name(table_name)

        t = f'"{self.table_name}"'
        self._sql_create_table = (
            f"CREATE TABLE IF NOT EXISTS {t} (id SERIAL PRIMARY KEY, name VARCHAR(50), age INT)"
        )
        self._sql_insert = f"INSERT INTO {t} (name, age) VALUES ($1, $2) RETURNING id"
        self._sql_select_all = f"SELECT id, name, age FROM {t} ORDER BY id"
        self._sql_select_one = f"SELECT id, name, age FROM {t} WHERE id = $1"
        self._sql_update = f"UPDATE {t} SET name = $1, age = $2 WHERE id = $3"
        self._sql_delete = f"DELETE FROM {t} WHERE id = $1"
        self._sql_count = f"SELECT COUNT(*) FROM {t}"

    @contextmanager
    def _span(self, operation: str) -> Iterator[Span]:
        with self._tracer.start_as_current_span(
            operation,
            attributes={
                "db.system": "postgresql",
                "db.sql.table": self.table_name,
                "db.operation": operation,
            },
        ) as span:
            try:
                yield span
            except _STORE_ERRORS as exc:
                logger.error(
                    "Store call failed: %s",
                    exc,
                    extra={"operation": operation, "table": self.table_name},
                )
                raise StoreError(operation, exc) from exc

    async def ensure_table(self) -> None:
        """Create the backing table if absent. Called once before serving."""
        with self._span("EnsureTable"):
            await self._pool.execute(self._sql_create_table)

    async def create(self, name: str, age: int) -> int:
        with self._span("Create"):
            person_id = await self._pool.fetchval(self._sql_insert, name, age)
        return int(person_id)

    async def find_all(self) -> list[Person]:
        with self._span("FindAll") as span:
            rows = await self._pool.fetch(self._sql_select_all)
            span.set_attribute("db.rows", len(rows))
        return [Person(**db.record_to_dict(row)) for row in rows]

    async def find_by_id(self, person_id: int) -> Person:
        with self._span("FindById"):
            row = await self._pool.fetchrow(self._sql_select_one, person_id)
        if row is None:
            raise PersonNotFoundError(person_id)
        return Person(**db.record_to_dict(row))

    async def update(self, person_id: int, name: str, age: int) -> None:
        with self._span("Update"):
            await self._pool.execute(self._sql_update, name, age, person_id)

    async def delete(self, person_id: int) -> None:
        with self._span("Delete"):
            await self._pool.execute(self._sql_delete, person_id)

    async def count(self) -> int:
        with self._span("Count"):
            total = await self._pool.fetchval(self._sql_count)
        return int(total or 0)
