"""Task orchestration: create, read, update, delete and workflow moves.

Every public method is one unit of work on the injected session. All
reference checks finish before anything is written, and any failure rolls
the whole operation back. There is no locking: two updates racing on the
same task both commit and the later one wins.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.core.database import transaction
from app.core.exceptions import TaskNotFoundError
from app.models.task import Task
from app.repositories.project_repository import ProjectRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.user_repository import UserRepository
from app.schemas.task import TaskCreate, TaskStatus, TaskUpdate
from app.services.assignment_resolver import AssignmentResolver

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("title", "description", "priority", "due_date", "estimated_hours", "notes")


class TaskService:
    def __init__(
        self,
        db: AsyncSession,
        tasks: Optional[TaskRepository] = None,
        users: Optional[UserRepository] = None,
        projects: Optional[ProjectRepository] = None,
    ):
        self.db = db
        self.tasks = tasks or TaskRepository(db)
        self.users = users or UserRepository(db)
        self.projects = projects or ProjectRepository(db)
        self.resolver = AssignmentResolver(self.users, self.projects)

    async def create_task(self, data: TaskCreate) -> Task:
        logger.info("Creating new task: title=%s, assigneeIds=%s, projectId=%s",
                    data.title, data.assignee_ids, data.project_id)
        async with transaction(self.db):
            # Entity checks run before any lookup.
            task = Task(
                title=data.title,
                description=data.description,
                priority=data.priority,
                due_date=data.due_date,
                estimated_hours=data.estimated_hours,
                notes=data.notes,
                status=TaskStatus.PENDING,
                comments=[],
                attachments=[],
            )
            assignees = await self.resolver.resolve_assignees(data.assignee_ids)
            project = await self.resolver.require_active_project(data.project_id)

            task.assignees = assignees
            task.project = project
            await self.tasks.save(task)
            logger.info("Task saved successfully: taskId=%s, title=%s", task.id, task.title)
            return await self.load_task_with_assignees(task.id)

    async def get_task_by_id(self, task_id: int) -> Task:
        logger.info("Fetching task by ID: %s", task_id)
        async with transaction(self.db):
            return await self.load_task_with_assignees(task_id)

    async def load_task_with_assignees(self, task_id: int) -> Task:
        """Read a task with a correct assignee set.

        The linked user ids are read from the raw relation, then resolved
        through the filtered directory, and only then attached to the task.
        Keeping the two steps apart means the soft-delete filter can only
        drop deleted users, never the whole collection. Users who are
        inactive but not deleted stay visible.
        """
        task = await self.tasks.find_by_id_without_assignees(task_id)
        if task is None:
            logger.error("Task not found: id=%s", task_id)
            raise TaskNotFoundError(task_id)

        assignee_ids = await self.users.find_assignment_ids(task_id)
        assignees = await self.users.find_all_by_id(assignee_ids)
        # committed value: a read must never rewrite the link table
        set_committed_value(task, "assignees", assignees)

        hidden = set(assignee_ids) - {user.id for user in assignees}
        for user_id in sorted(hidden):
            user = await self.users.find_by_id_including_deleted(user_id)
            logger.info("Assignee hidden from task %s: userId=%s, deleted=%s",
                        task_id, user_id, user.deleted if user is not None else None)

        logger.debug("Task loaded: id=%s, linkedIds=%s, visibleAssignees=%d",
                     task_id, assignee_ids, len(assignees))
        return task

    async def update_task(self, task_id: int, data: TaskUpdate) -> Task:
        changes = data.provided()
        logger.info("Updating task: id=%s, fields=%s", task_id, sorted(changes))
        async with transaction(self.db):
            task = await self._get_for_update(task_id)

            # Entity checks run before any lookup; a later failure rolls these back.
            for name in _SCALAR_FIELDS:
                if name in changes:
                    logger.debug("Updating %s: %r -> %r", name, getattr(task, name), changes[name])
                    setattr(task, name, changes[name])

            if "status" in changes:
                logger.debug("Status transition: %s -> %s", task.status, changes["status"])
                task.set_status(changes["status"])

            new_assignees = None
            if "assignee_ids" in changes:
                new_assignees = await self.resolver.resolve_assignees(changes["assignee_ids"])
            new_project = None
            if "project_id" in changes and changes["project_id"] != task.project_id:
                new_project = await self.resolver.require_active_project(changes["project_id"])

            if new_assignees is not None:
                if not new_assignees:
                    logger.warning("Task %s set to UNASSIGNED (empty assignee list)", task_id)
                task.assignees = new_assignees

            if new_project is not None:
                logger.info("Task project updated: taskId=%s, oldProjectId=%s, newProjectId=%s",
                            task_id, task.project_id, new_project.id)
                task.project = new_project

            await self.tasks.save(task)
        logger.info("Task updated successfully: id=%s", task_id)
        # the in-memory collection already reflects the update
        return task

    async def delete_task(self, task_id: int) -> None:
        logger.info("Deleting task: id=%s", task_id)
        async with transaction(self.db):
            task = await self._get_for_update(task_id)
            await self.tasks.delete(task)
        logger.info("Task deleted successfully: id=%s", task_id)

    async def start_task(self, task_id: int) -> Task:
        return await self._run_workflow(task_id, "start")

    async def complete_task(self, task_id: int) -> Task:
        return await self._run_workflow(task_id, "complete")

    async def block_task(self, task_id: int, reason: str) -> Task:
        return await self._run_workflow(task_id, "block", reason)

    async def cancel_task(self, task_id: int) -> Task:
        return await self._run_workflow(task_id, "cancel")

    async def _run_workflow(self, task_id: int, action: str, *args) -> Task:
        logger.info("Task workflow: id=%s, action=%s", task_id, action)
        async with transaction(self.db):
            task = await self._get_for_update(task_id)
            getattr(task, action)(*args)
            await self.tasks.save(task)
            return await self.load_task_with_assignees(task_id)

    async def _get_for_update(self, task_id: int) -> Task:
        task = await self.tasks.find_by_id(task_id)
        if task is None:
            logger.error("Task not found: id=%s", task_id)
            raise TaskNotFoundError(task_id)
        return task
