from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.task import task_assignees
from app.models.user import User


class UserRepository:
    """Read-only user directory.

    Ordinary lookups go through the session's soft-delete scope, so deleted
    users are never returned unless a method says otherwise.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_all_by_id(self, ids: Iterable[int]) -> List[User]:
        ids = set(ids)
        if not ids:
            return []
        result = await self.db.execute(select(User).where(User.id.in_(ids)))
        return list(result.scalars().all())

    async def find_by_id_including_deleted(self, user_id: int) -> Optional[User]:
        """Bypass lookup, used to re-check a linked user the filtered view hid."""
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(include_deleted=True)
        )
        return result.scalar_one_or_none()

    async def find_assignment_ids(self, task_id: int) -> List[int]:
        # Raw link rows; deliberately not joined to users.
        result = await self.db.execute(
            select(task_assignees.c.user_id)
            .where(task_assignees.c.task_id == task_id)
            .order_by(task_assignees.c.user_id)
        )
        return list(result.scalars().all())
