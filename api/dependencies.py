"""
FastAPI dependencies (shared across routes).

The repositories are built once by ``main.create_app`` and live on
``app.state``; routes pull them from there.
"""

from __future__ import annotations

from fastapi import Request

from database.todos import TodoRepository
from database.users import UserRepository


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.users


def get_todo_repository(request: Request) -> TodoRepository:
    return request.app.state.todos
