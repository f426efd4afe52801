"""Validation of assignee and project references.

Both checks are pure reads. They run to completion before a task is
written, so a rejected request never leaves partial state behind.
"""
import logging
from typing import Iterable, Set

from app.core.exceptions import InactiveAssigneeError, ProjectNotFoundError, UserNotFoundError
from app.models.project import Project
from app.models.user import User
from app.repositories.project_repository import ProjectRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class AssignmentResolver:
    def __init__(self, users: UserRepository, projects: ProjectRepository):
        self.users = users
        self.projects = projects

    async def resolve_assignees(self, candidate_ids: Iterable[int]) -> Set[User]:
        """Turn caller-supplied ids into a verified set of assignable users.

        An empty list is valid and yields an empty set. Every missing id and
        every inactive username is reported in a single error. When some ids
        are missing, the error is a not-found that also names any inactive
        users found alongside them.
        """
        distinct_ids = list(dict.fromkeys(candidate_ids))
        if not distinct_ids:
            return set()

        users = await self.users.find_all_by_id(distinct_ids)
        found_ids = {user.id for user in users}
        missing_ids = [user_id for user_id in distinct_ids if user_id not in found_ids]
        inactive_usernames = [user.username for user in users if not user.is_active()]

        if missing_ids:
            logger.error("Some assignees not found: missingIds=%s inactive=%s",
                         missing_ids, inactive_usernames)
            raise UserNotFoundError(missing_ids, inactive_usernames)
        if inactive_usernames:
            logger.error("Cannot assign task to inactive users: %s", ", ".join(inactive_usernames))
            raise InactiveAssigneeError(inactive_usernames)

        logger.debug("All %d assignees validated successfully", len(users))
        return set(users)

    async def require_active_project(self, project_id: int) -> Project:
        project = await self.projects.find_active_by_id(project_id)
        if project is None:
            logger.error("Active project not found: id=%s", project_id)
            raise ProjectNotFoundError(project_id)
        return project
