"""
TODO endpoints.

A single path, ``/todos``, dispatches on the HTTP verb:

* ``GET`` lists TODOs newest first, paginated by ``prev_id``/``size``.
* ``POST`` creates a TODO from ``subject`` and ``description``.
* ``PUT`` replaces subject and description of the TODO with ``id``.
* ``DELETE`` removes every TODO listed in ``ids``.

The router is registered with the basic authentication dependency, so
none of these handlers runs for an unauthenticated request.  Every other
verb is routed to ``unsupported_method``, which sits behind the same
dependency: without credentials it is a 401, with them a 405.  Store
failures surface as 500 through the ``StoreError`` handler installed by
the application factory.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from todo_api.app.api.endpoints import ALL_METHODS
from todo_api.app.core.exceptions import NotFoundError
from todo_api.app.schemas.todo import (
    CreateTODORequest,
    CreateTODOResponse,
    DeleteTODORequest,
    DeleteTODOResponse,
    ReadTODOResponse,
    UpdateTODORequest,
    UpdateTODOResponse,
)
from todo_api.app.services.todo_service import TODOService

DEFAULT_PAGE_SIZE = 5
TODO_METHODS = ("GET", "POST", "PUT", "DELETE")

router = APIRouter()


def get_todo_service(request: Request) -> TODOService:
    return request.app.state.todo_service


@router.get("/todos", response_model=ReadTODOResponse)
async def read_todos(
    prev_id: int = Query(0, ge=0, description="Return only TODOs with an ID below this one"),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=0, description="Maximum number of TODOs to return"),
    service: TODOService = Depends(get_todo_service),
) -> ReadTODOResponse:
    todos = await service.read_todos(prev_id=prev_id, size=size)
    return ReadTODOResponse(todos=todos)


@router.post("/todos", response_model=CreateTODOResponse)
async def create_todo(
    body: CreateTODORequest,
    service: TODOService = Depends(get_todo_service),
) -> CreateTODOResponse:
    if not body.subject:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="subject is required")
    todo = await service.create_todo(body.subject, body.description)
    return CreateTODOResponse(todo=todo)


@router.put("/todos", response_model=UpdateTODOResponse)
async def update_todo(
    body: UpdateTODORequest,
    service: TODOService = Depends(get_todo_service),
) -> UpdateTODOResponse:
    if not body.subject:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="subject is required")
    try:
        todo = await service.update_todo(body.id, body.subject, body.description)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    return UpdateTODOResponse(todo=todo)


@router.delete("/todos", response_model=DeleteTODOResponse)
async def delete_todos(
    body: DeleteTODORequest,
    service: TODOService = Depends(get_todo_service),
) -> DeleteTODOResponse:
    if not body.ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids is required")
    try:
        await service.delete_todos(body.ids)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    return DeleteTODOResponse()


@router.api_route(
    "/todos",
    methods=[m for m in ALL_METHODS if m not in TODO_METHODS],
    include_in_schema=False,
)
async def unsupported_method() -> None:
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method Not Allowed",
        headers={"Allow": ", ".join(TODO_METHODS)},
    )
