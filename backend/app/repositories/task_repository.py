from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload, raiseload, selectinload

from app.models.task import Task


class TaskRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, task: Task) -> Task:
        self.db.add(task)
        await self.db.flush()
        return task

    async def find_by_id(self, task_id: int) -> Optional[Task]:
        """Task with every relation loaded, assignees unfiltered.

        Used by mutations: replacing or deleting the assignee collection must
        see every link, including links to soft-deleted users.
        """
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .options(
                selectinload(Task.assignees),
                joinedload(Task.project),
                selectinload(Task.comments),
                selectinload(Task.attachments),
            )
            .execution_options(include_deleted=True, populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_id_without_assignees(self, task_id: int) -> Optional[Task]:
        """Scalars, project and owned children; never touches users."""
        result = await self.db.execute(
            select(Task)
            .where(Task.id == task_id)
            .options(
                raiseload(Task.assignees),
                joinedload(Task.project),
                selectinload(Task.comments),
                selectinload(Task.attachments),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete(self, task: Task) -> None:
        # link rows, comments and attachments go with it
        await self.db.delete(task)
        await self.db.flush()
