"""
REST API routes for todos.

Every route except ``/health`` requires a bearer token; the owner is always
the authenticated user, never a value taken from the request.
"""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import get_todo_repository
from auth.dependencies import get_current_user_id
from database.todos import TodoRepository
from utils.schemas import ErrorResponse, TodoIn, TodoOut

router = APIRouter(
    tags=["todos"],
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)

_UNAUTHORIZED = {status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}}
_NOT_FOUND = {**_UNAUTHORIZED, status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}


@router.get("/todos", response_model=List[TodoOut], responses=_UNAUTHORIZED)
async def list_todos(
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> List[TodoOut]:
    return [TodoOut.model_validate(t) for t in await todos.list(user_id)]


@router.post(
    "/todos",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    responses=_UNAUTHORIZED,
)
async def create_todo(
    payload: TodoIn,
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> TodoOut:
    todo = await todos.create(
        user_id,
        payload.text,
        category=payload.category,
        tags=payload.tags,
        priority=payload.priority,
        due_date=payload.due_date,
    )
    return TodoOut.model_validate(todo)


@router.put("/todos/{todo_id}", response_model=TodoOut, responses=_NOT_FOUND)
async def update_todo(
    todo_id: str,
    payload: TodoIn,
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> TodoOut:
    todo = await todos.update(
        user_id,
        todo_id,
        payload.text,
        category=payload.category,
        tags=payload.tags,
        priority=payload.priority,
        due_date=payload.due_date,
    )
    return TodoOut.model_validate(todo)


@router.delete("/todos/{todo_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_NOT_FOUND)
async def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> Response:
    await todos.delete(user_id, todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/toggle/{todo_id}", response_model=TodoOut, responses=_NOT_FOUND)
async def toggle_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> TodoOut:
    """Flip the completion flag of one of the caller's todos."""
    return TodoOut.model_validate(await todos.toggle_completion(user_id, todo_id))


@router.get("/categories", response_model=List[str], responses=_UNAUTHORIZED)
async def list_categories(
    user_id: str = Depends(get_current_user_id),
    todos: TodoRepository = Depends(get_todo_repository),
) -> List[str]:
    return await todos.categories(user_id)


@router.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}
