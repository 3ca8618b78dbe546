"""
Error hierarchy for the persons service.

Every error carries an `ErrorKind`; the HTTP layer maps the kind to a status
code and never inspects driver exceptions itself.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


_HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INTERNAL: 500,
}


class PersonsError(RuntimeError):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.kind]


class PersonValidationError(PersonsError):
    """Client supplied a body or path value that cannot be used."""

    kind = ErrorKind.VALIDATION


class PersonNotFoundError(PersonsError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, person_id: int) -> None:
        super().__init__(f"Person {person_id} not found.")
        self.person_id = person_id


class StoreError(PersonsError):
    """The store could not be reached or rejected a statement."""

    kind = ErrorKind.INTERNAL

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Store operation {operation} failed{detail}")
        self.operation = operation
