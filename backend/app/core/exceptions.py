"""Domain error taxonomy.

Three kinds reach the caller: ValidationError (bad input), NotFoundError
(nothing to operate on) and BusinessRuleViolation (entities exist but a
rule forbids the change). Multi-item failures carry every offending item.
"""
from typing import Any, Dict, Iterable, List, Optional


class TaskflowError(Exception):
    """Base class for all errors raised by the task core."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TaskflowError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class NotFoundError(TaskflowError):
    pass


class TaskNotFoundError(NotFoundError):
    def __init__(self, task_id: int):
        super().__init__(f"Task not found with ID: {task_id}", {"task_id": task_id})
        self.task_id = task_id


class ProjectNotFoundError(NotFoundError):
    # Missing and archived projects are reported the same way.
    def __init__(self, project_id: int):
        super().__init__(
            f"Active project not found with ID: {project_id}",
            {"project_id": project_id},
        )
        self.project_id = project_id


class UserNotFoundError(NotFoundError):
    def __init__(self, missing_ids: Iterable[int], inactive_usernames: Iterable[str] = ()):
        self.missing_ids: List[int] = sorted(missing_ids)
        self.inactive_usernames: List[str] = sorted(inactive_usernames)
        message = f"Assignees not found with IDs: {self.missing_ids}"
        if self.inactive_usernames:
            message += "; inactive users: " + ", ".join(self.inactive_usernames)
        details: Dict[str, Any] = {"missing_ids": self.missing_ids}
        if self.inactive_usernames:
            details["inactive_usernames"] = self.inactive_usernames
        super().__init__(message, details)


class BusinessRuleViolation(TaskflowError):
    pass


class InactiveAssigneeError(BusinessRuleViolation):
    def __init__(self, inactive_usernames: Iterable[str]):
        self.inactive_usernames: List[str] = sorted(inactive_usernames)
        super().__init__(
            "Cannot assign task to inactive users: " + ", ".join(self.inactive_usernames),
            {"inactive_usernames": self.inactive_usernames},
        )


class InvalidTransitionError(BusinessRuleViolation):
    def __init__(self, action: str, current_status: str, attempted_status: str,
                 allowed_from: Iterable[str]):
        self.action = action
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.allowed_from = list(allowed_from)
        super().__init__(
            f"Cannot {action} task: {current_status} -> {attempted_status} is not allowed; "
            f"allowed from: {', '.join(self.allowed_from)}",
            {
                "action": action,
                "current_status": current_status,
                "attempted_status": attempted_status,
                "allowed_from": self.allowed_from,
            },
        )
