"""
Todo repository — CRUD over todos scoped to their owning user.

Every query filters on ``user_id``, so a todo that belongs to someone else
is indistinguishable from one that does not exist.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import InvalidInput, NotFound, Unauthorized
from database.models import PRIORITIES, Todo

logger = logging.getLogger(__name__)

_TODO_NOT_FOUND = "Todo not found"


def _clean_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    if not text:
        raise InvalidInput("text must not be empty")
    return text


def _clean_category(category: Optional[str]) -> Optional[str]:
    if category is None:
        return None
    category = category.strip()
    return category or None


def _clean_tags(tags: Optional[Sequence[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned = []
    for tag in tags:
        tag = tag.strip() if isinstance(tag, str) else ""
        if not tag:
            raise InvalidInput("tags must be non-empty strings")
        cleaned.append(tag)
    return cleaned


def _clean_priority(priority: Optional[str]) -> Optional[str]:
    if priority is None:
        return None
    if priority not in PRIORITIES:
        raise InvalidInput(f"priority must be one of: {', '.join(PRIORITIES)}")
    return priority


def _clean_due_date(due_date: Optional[datetime]) -> Optional[datetime]:
    if due_date is None:
        return None
    if due_date.tzinfo is None:
        return due_date.replace(tzinfo=timezone.utc)
    return due_date.astimezone(timezone.utc)


class TodoRepository:
    """Each public method runs in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = session_factory

    async def create(
        self,
        owner_id: str,
        text: str,
        category: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        priority: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Todo:
        now = datetime.now(timezone.utc)
        todo = Todo(
            id=str(uuid.uuid4()),
            user_id=owner_id,
            text=_clean_text(text),
            completed=False,
            category=_clean_category(category),
            tags=_clean_tags(tags),
            priority=_clean_priority(priority),
            due_date=_clean_due_date(due_date),
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._sessions.begin() as session:
                session.add(todo)
        except IntegrityError:
            # The only reference on insert is user_id: the account is gone.
            logger.info("Rejected todo for unknown user %s", owner_id)
            raise Unauthorized("Account no longer exists")

        logger.info("Created todo %s for user %s", todo.id, owner_id)
        return todo

    async def list(self, owner_id: str) -> List[Todo]:
        """All todos of ``owner_id``, oldest first."""
        async with self._sessions() as session:
            result = await session.execute(
                select(Todo)
                .where(Todo.user_id == owner_id)
                .order_by(Todo.created_at.asc(), Todo.id.asc())
            )
            return list(result.scalars().all())

    async def _get_owned(self, session: AsyncSession, owner_id: str, todo_id: str) -> Todo:
        result = await session.execute(
            select(Todo).where(Todo.id == todo_id, Todo.user_id == owner_id)
        )
        todo = result.scalar_one_or_none()
        if todo is None:
            raise NotFound(_TODO_NOT_FOUND)
        return todo

    async def toggle_completion(self, owner_id: str, todo_id: str) -> Todo:
        """
        Flip ``completed`` on one of the owner's todos.

        The flip is a single ``UPDATE ... SET completed = NOT completed`` so
        concurrent toggles of the same row serialize in the store instead of
        overwriting each other.
        """
        async with self._sessions.begin() as session:
            result = await session.execute(
                update(Todo)
                .where(Todo.id == todo_id, Todo.user_id == owner_id)
                .values(
                    completed=not_(Todo.completed),
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(_TODO_NOT_FOUND)
            todo = await self._get_owned(session, owner_id, todo_id)

        logger.info("Toggled todo %s -> completed=%s", todo_id, todo.completed)
        return todo

    async def update(
        self,
        owner_id: str,
        todo_id: str,
        text: str,
        category: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        priority: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> Todo:
        """Replace the editable fields of one of the owner's todos."""
        values = dict(
            text=_clean_text(text),
            category=_clean_category(category),
            tags=_clean_tags(tags),
            priority=_clean_priority(priority),
            due_date=_clean_due_date(due_date),
        )
        async with self._sessions.begin() as session:
            todo = await self._get_owned(session, owner_id, todo_id)
            for key, value in values.items():
                setattr(todo, key, value)
            todo.updated_at = datetime.now(timezone.utc)

        logger.info("Updated todo %s", todo_id)
        return todo

    async def delete(self, owner_id: str, todo_id: str) -> None:
        async with self._sessions.begin() as session:
            result = await session.execute(
                delete(Todo)
                .where(Todo.id == todo_id, Todo.user_id == owner_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFound(_TODO_NOT_FOUND)

        logger.info("Deleted todo %s", todo_id)

    async def categories(self, owner_id: str) -> List[str]:
        """Distinct, non-null categories used by the owner, sorted."""
        async with self._sessions() as session:
            result = await session.execute(
                select(Todo.category)
                .where(Todo.user_id == owner_id, Todo.category.is_not(None))
                .distinct()
                .order_by(Todo.category)
            )
            return list(result.scalars().all())
