"""
Person HTTP handlers.

Each method opens a span from the injected `person-handler` tracer, parses
input, calls the repository and encodes the response. Repository errors are
mapped by kind: not found -> 404, validation -> 400, store failure -> 500.
The span's `http.status_code` attribute always ends up as the status actually
returned.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from opentelemetry.trace import Span, Status, StatusCode, Tracer
from pydantic import ValidationError

from core.errors import ErrorKind, PersonsError, PersonValidationError

from .repository import PersonRepository
from .schemas import INT32_MAX, INT32_MIN, PersonIn

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


def parse_person_id(raw: str) -> int:
    value = (raw or "").strip()
    if not _INT_RE.fullmatch(value):
        raise PersonValidationError(f"Person id must be an integer, got {raw!r}.")
    person_id = int(value)
    if not INT32_MIN <= person_id <= INT32_MAX:
        raise PersonValidationError(f"Person id is out of range, got {raw!r}.")
    return person_id


def decode_person(body: bytes) -> PersonIn:
    try:
        return PersonIn.model_validate_json(body or b"")
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'body'}: {err['msg']}" for err in exc.errors()
        )
        raise PersonValidationError(f"Invalid person payload ({problems}).") from exc


def _to_http_error(exc: PersonsError) -> HTTPException:
    if exc.kind is ErrorKind.INTERNAL:
        # Driver messages stay in the logs.
        return HTTPException(status_code=exc.http_status, detail="Internal Server Error")
    return HTTPException(status_code=exc.http_status, detail=exc.message)


class PersonHandler:
    def __init__(self, repository: PersonRepository, tracer: Tracer) -> None:
        self.repository = repository
        self._tracer = tracer

    @contextmanager
    def _http_span(self, name: str, request: Request, success_status: int) -> Iterator[Span]:
        attributes = {
            "http.handler": name,
            "http.method": request.method,
            "http.url": str(request.url),
            "http.path": request.url.path,
            "http.host": request.headers.get("host", ""),
            "http.status_code": success_status,
        }
        with self._tracer.start_as_current_span(
            name,
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            try:
                yield span
            except PersonsError as exc:
                http_exc = _to_http_error(exc)
                self._finish_error(span, http_exc.status_code, exc)
                raise http_exc from exc
            except Exception as exc:
                self._finish_error(span, status.HTTP_500_INTERNAL_SERVER_ERROR, exc)
                raise

    @staticmethod
    def _finish_error(span: Span, status_code: int, exc: BaseException) -> None:
        span.set_attribute("http.status_code", status_code)
        if status_code >= 500:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))

    async def list_persons(self, request: Request) -> JSONResponse:
        with self._http_span("GetPerson", request, status.HTTP_200_OK):
            persons = await self.repository.find_all()
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content=[person.model_dump() for person in persons],
            )

    async def get_person(self, request: Request, raw_id: str) -> JSONResponse:
        with self._http_span("GetPersonByID", request, status.HTTP_200_OK):
            person_id = parse_person_id(raw_id)
            person = await self.repository.find_by_id(person_id)
            return JSONResponse(status_code=status.HTTP_200_OK, content=person.model_dump())

    async def create_person(self, request: Request) -> JSONResponse:
        with self._http_span("CreatePerson", request, status.HTTP_201_CREATED):
            payload = decode_person(await request.body())
            person_id = await self.repository.create(payload.name, payload.age)
            logger.info("Person created", extra={"person_id": person_id})
            return JSONResponse(
                status_code=status.HTTP_201_CREATED,
                content={"message": "Person created"},
                headers={"Location": f"{request.url.path.rstrip('/')}/{person_id}"},
            )

    async def update_person(self, request: Request, raw_id: str) -> JSONResponse:
        with self._http_span("UpdatePerson", request, status.HTTP_200_OK):
            person_id = parse_person_id(raw_id)
            payload = decode_person(await request.body())
            await self.repository.update(person_id, payload.name, payload.age)
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content={"message": "Person updated", "id": person_id},
            )

    async def delete_person(self, request: Request, raw_id: str) -> JSONResponse:
        with self._http_span("DeletePerson", request, status.HTTP_200_OK):
            person_id = parse_person_id(raw_id)
            await self.repository.delete(person_id)
            return JSONResponse(
                status_code=status.HTTP_200_OK,
                content={"message": "Person deleted", "id": person_id},
            )

    async def count_persons(self, request: Request) -> JSONResponse:
        with self._http_span("CountPerson", request, status.HTTP_200_OK):
            total = await self.repository.count()
            return JSONResponse(status_code=status.HTTP_200_OK, content={"user_count": total})
