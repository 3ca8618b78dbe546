"""
Person API endpoints.

Mounted under `/persons` by `api/main.py`. Every route sits behind the auth
gate. `/count` is declared before `/{person_id}` so the literal path wins.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from auth import dependencies as auth_dependencies

from .handler import PersonHandler

router = APIRouter(dependencies=[Depends(auth_dependencies.require_access_token)])


def get_person_handler(request: Request) -> PersonHandler:
    return request.app.state.person_handler


@router.get("/")
async def list_persons(
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.list_persons(request)


@router.get("/count")
async def count_persons(
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.count_persons(request)


@router.get("/{person_id}")
async def get_person(
    person_id: str,
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.get_person(request, person_id)


@router.post("/")
async def create_person(
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.create_person(request)


@router.put("/{person_id}")
async def update_person(
    person_id: str,
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.update_person(request, person_id)


@router.delete("/{person_id}")
async def delete_person(
    person_id: str,
    request: Request,
    handler: PersonHandler = Depends(get_person_handler),
) -> JSONResponse:
    return await handler.delete_person(request, person_id)
