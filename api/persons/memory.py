"""
In-memory PersonRepository.

Used by tests and by `PERSONS_BACKEND=memory`. Ids start at 1 and are never
reused, matching a SERIAL column.
"""

from __future__ import annotations

import itertools

from opentelemetry.trace import Tracer

from core.errors import PersonNotFoundError

from .repository import DEFAULT_TABLE, PersonRepository, validate_table_name
from .schemas import Person


class InMemoryPersonRepository(PersonRepository):
    def __init__(self, tracer: Tracer, table_name: str = DEFAULT_TABLE) -> None:
        self._tracer = tracer
        self.table_name = validate_table_name(table_name)
        self._rows: dict[int, Person] = {}
        self._ids = itertools.count(1)

    def _span(self, operation: str):
        return self._tracer.start_as_current_span(
            operation,
            attributes={
                "db.system": "memory",
                "db.sql.table": self.table_name,
                "db.operation": operation,
            },
        )

    async def ensure_table(self) -> None:
        with self._span("EnsureTable"):
            return None

    async def create(self, name: str, age: int) -> int:
        with self._span("Create"):
            person_id = next(self._ids)
            self._rows[person_id] = Person(id=person_id, name=name, age=age)
        return person_id

    async def find_all(self) -> list[Person]:
        with self._span("FindAll"):
            return [self._rows[k].model_copy() for k in sorted(self._rows)]

    async def find_by_id(self, person_id: int) -> Person:
        with self._span("FindById"):
            person = self._rows.get(person_id)
        if person is None:
            raise PersonNotFoundError(person_id)
        return person.model_copy()

    async def update(self, person_id: int, name: str, age: int) -> None:
        with self._span("Update"):
            if person_id in self._rows:
                self._rows[person_id] = Person(id=person_id, name=name, age=age)

    async def delete(self, person_id: int) -> None:
        with self._span("Delete"):
            self._rows.pop(person_id, None)

    async def count(self) -> int:
        with self._span("Count"):
            return len(self._rows)
