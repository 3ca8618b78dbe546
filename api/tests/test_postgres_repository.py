"""PostgresPersonRepository against a recording asyncpg-style pool."""

import asyncpg
import pytest

from core.errors import PersonNotFoundError, StoreError
from core.observability import REPOSITORY_TRACER
from persons.repository import PostgresPersonRepository, validate_table_name
from persons.schemas import Person


class FakePool:
    """Stands in for asyncpg.Pool; records (method, sql, args) tuples."""

    def __init__(self, *, rows=None, row=None, value=None, error=None):
        self.calls = []
        self.rows = rows or []
        self.row = row
        self.value = value
        self.error = error

    def _record(self, method, sql, args):
        self.calls.append((method, sql, args))
        if self.error is not None:
            raise self.error

    async def execute(self, sql, *args):
        self._record("execute", sql, args)
        return "OK"

    async def fetch(self, sql, *args):
        self._record("fetch", sql, args)
        return self.rows

    async def fetchrow(self, sql, *args):
        self._record("fetchrow", sql, args)
        return self.row

    async def fetchval(self, sql, *args):
        self._record("fetchval", sql, args)
        return self.value


@pytest.fixture
def tracer(tracer_provider):
    return tracer_provider.get_tracer(REPOSITORY_TRACER)


def _repo(pool, tracer, table="users"):
    return PostgresPersonRepository(pool, tracer, table_name=table)


async def test_ensure_table_is_create_if_absent(tracer):
    pool = FakePool()
    await _repo(pool, tracer).ensure_table()
    method, sql, _ = pool.calls[0]
    assert method == "execute"
    assert sql == (
        'CREATE TABLE IF NOT EXISTS "users" '
        "(id SERIAL PRIMARY KEY, name VARCHAR(50), age INT)"
    )


async def test_table_name_is_configurable(tracer):
    pool = FakePool(value=0)
    await _repo(pool, tracer, table="people").count()
    assert pool.calls[0][1] == 'SELECT COUNT(*) FROM "people"'


@pytest.mark.parametrize("name", ["", "1users", "users; DROP TABLE x", "my-table", "a" * 64])
def test_invalid_table_name_is_rejected_at_construction(tracer, name):
    with pytest.raises(ValueError):
        _repo(FakePool(), tracer, table=name)


def test_table_name_is_trimmed():
    assert validate_table_name("  users ") == "users"


async def test_create_returns_store_assigned_id(tracer):
    pool = FakePool(value=17)
    person_id = await _repo(pool, tracer).create("Alice", 30)
    assert person_id == 17
    assert pool.calls == [
        ("fetchval", 'INSERT INTO "users" (name, age) VALUES ($1, $2) RETURNING id', ("Alice", 30)),
    ]


async def test_find_all_maps_rows(tracer):
    pool = FakePool(rows=[{"id": 1, "name": "A", "age": 1}, {"id": 2, "name": "B", "age": 2}])
    persons = await _repo(pool, tracer).find_all()
    assert persons == [Person(id=1, name="A", age=1), Person(id=2, name="B", age=2)]


async def test_find_by_id_queries_supplied_id(tracer):
    pool = FakePool(row={"id": 5, "name": "E", "age": 50})
    person = await _repo(pool, tracer).find_by_id(5)
    assert person == Person(id=5, name="E", age=50)
    assert pool.calls[0][2] == (5,)


async def test_find_by_id_without_row_is_not_found(tracer):
    with pytest.raises(PersonNotFoundError) as exc_info:
        await _repo(FakePool(row=None), tracer).find_by_id(3)
    assert exc_info.value.person_id == 3
    assert not isinstance(exc_info.value, StoreError)


async def test_update_and_delete_bind_parameters(tracer):
    pool = FakePool()
    repo = _repo(pool, tracer)
    await repo.update(4, "D", 44)
    await repo.delete(4)
    assert pool.calls == [
        ("execute", 'UPDATE "users" SET name = $1, age = $2 WHERE id = $3', ("D", 44, 4)),
        ("execute", 'DELETE FROM "users" WHERE id = $1', (4,)),
    ]


async def test_count_handles_null(tracer):
    assert await _repo(FakePool(value=None), tracer).count() == 0
    assert await _repo(FakePool(value=9), tracer).count() == 9


@pytest.mark.parametrize(
    "error",
    [
        ConnectionRefusedError("connection refused"),
        asyncpg.exceptions.ConnectionDoesNotExistError("connection was closed"),
        TimeoutError(),
    ],
)
async def test_driver_failures_become_store_errors(tracer, error):
    with pytest.raises(StoreError) as exc_info:
        await _repo(FakePool(error=error), tracer).find_by_id(1)
    assert exc_info.value.operation == "FindById"
    assert exc_info.value.__cause__ is error


async def test_unrelated_errors_are_not_wrapped(tracer):
    with pytest.raises(ZeroDivisionError):
        await _repo(FakePool(error=ZeroDivisionError()), tracer).count()


async def test_span_ends_on_failure(tracer, span_exporter):
    with pytest.raises(StoreError):
        await _repo(FakePool(error=ConnectionRefusedError()), tracer).delete(1)

    (span,) = span_exporter.get_finished_spans()
    assert span.name == "Delete"
    assert span.attributes["db.sql.table"] == "users"
    assert span.attributes["db.system"] == "postgresql"
