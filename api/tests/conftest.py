"""Shared fixtures: in-memory repository, recording tracer, authenticated client.

Invariants:
    - Every test gets a fresh repository and a fresh span exporter
    - The app is built with an injected repository, so no database is opened
    - `client` carries a valid bearer token; `anon_client` carries none
"""

import pytest
from httpx import ASGITransport, AsyncClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from auth import security
from core.observability import REPOSITORY_TRACER, build_tracer_provider
from core.settings import Settings
from main import create_app
from persons.memory import InMemoryPersonRepository

SECRET = "test-signing-secret-0123456789abcdef"


class SpyRepository(InMemoryPersonRepository):
    """Records every repository call so tests can assert the handler never ran."""

    def __init__(self, tracer):
        super().__init__(tracer)
        self.calls = []

    async def create(self, name, age):
        self.calls.append("create")
        return await super().create(name, age)

    async def find_all(self):
        self.calls.append("find_all")
        return await super().find_all()

    async def find_by_id(self, person_id):
        self.calls.append("find_by_id")
        return await super().find_by_id(person_id)

    async def update(self, person_id, name, age):
        self.calls.append("update")
        return await super().update(person_id, name, age)

    async def delete(self, person_id):
        self.calls.append("delete")
        return await super().delete(person_id)

    async def count(self):
        self.calls.append("count")
        return await super().count()


def make_token(secret=SECRET, **kwargs):
    return security.build_access_token(subject="42", secret=secret, **kwargs)


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    provider = build_tracer_provider("persons-test", span_exporter=span_exporter)
    yield provider
    provider.shutdown()


@pytest.fixture
def settings():
    return Settings(persons_backend="memory", jwt_secret=SECRET, log_format="text")


@pytest.fixture
def repository(tracer_provider):
    return SpyRepository(tracer_provider.get_tracer(REPOSITORY_TRACER))


@pytest.fixture
def app(settings, repository, tracer_provider):
    return create_app(settings, repository=repository, tracer_provider=tracer_provider)


@pytest.fixture
def token():
    return make_token()


@pytest.fixture
async def client(app, token):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as c:
        yield c


@pytest.fixture
async def anon_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
