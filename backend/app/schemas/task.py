from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum

from app.core.timeutils import as_utc, utcnow

class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    IN_REVIEW = "IN_REVIEW"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    @property
    def is_actionable(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        return _PRIORITY_LEVELS[self]

    @property
    def display_name(self) -> str:
        return self.value.title()

    def is_higher_than(self, other: "TaskPriority") -> bool:
        return self.level > other.level

_PRIORITY_LEVELS = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.CRITICAL: 4,
}

TITLE_MIN, TITLE_MAX = 3, 255
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 2000
NOTES_MAX = 1000
ESTIMATED_HOURS_MAX = 999

class TaskCreate(BaseModel):
    # No status field: new tasks always start PENDING, unknown keys are ignored.
    title: str = Field(..., min_length=TITLE_MIN, max_length=TITLE_MAX)
    description: str = Field(..., min_length=DESCRIPTION_MIN, max_length=DESCRIPTION_MAX)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    estimated_hours: Optional[int] = Field(None, ge=0, le=ESTIMATED_HOURS_MAX)
    notes: Optional[str] = Field(None, max_length=NOTES_MAX)
    assignee_ids: List[int] = Field(default_factory=list)
    project_id: int = Field(..., gt=0)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def due_date_present_or_future(cls, value: datetime) -> datetime:
        value = as_utc(value)
        # one minute of grace for client clock skew
        if (utcnow() - value).total_seconds() > 60:
            raise ValueError("Due date must be in the present or future")
        return value

    @field_validator("assignee_ids")
    @classmethod
    def positive_ids(cls, value: List[int]) -> List[int]:
        if any(user_id <= 0 for user_id in value):
            raise ValueError("Assignee IDs must be positive")
        return value

# Fields that cannot be cleared by sending an explicit null.
_REQUIRED_ON_UPDATE = (
    "title", "description", "status", "priority", "due_date", "project_id", "assignee_ids",
)

class TaskUpdate(BaseModel):
    """Partial update. Omitted fields are left unchanged.

    ``assignee_ids=[]`` unassigns everyone; ``notes=None`` and
    ``estimated_hours=None`` clear those optional fields.
    """
    title: Optional[str] = Field(None, min_length=TITLE_MIN, max_length=TITLE_MAX)
    description: Optional[str] = Field(None, min_length=DESCRIPTION_MIN, max_length=DESCRIPTION_MAX)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[int] = Field(None, ge=0, le=ESTIMATED_HOURS_MAX)
    notes: Optional[str] = Field(None, max_length=NOTES_MAX)
    assignee_ids: Optional[List[int]] = None
    project_id: Optional[int] = Field(None, gt=0)

    @field_validator("title", "description")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @field_validator("assignee_ids")
    @classmethod
    def positive_ids(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value and any(user_id <= 0 for user_id in value):
            raise ValueError("Assignee IDs must be positive")
        return value

    @model_validator(mode="after")
    def reject_null_required(self) -> "TaskUpdate":
        nulled = [
            name for name in _REQUIRED_ON_UPDATE
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self

    def provided(self) -> dict:
        """Only the fields the caller actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}

class BlockRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

class UserSummary(BaseModel):
    id: int
    username: str
    full_name: Optional[str]
    email: str

    class Config:
        from_attributes = True

class ProjectSummary(BaseModel):
    id: int
    name: str
    active: bool

    class Config:
        from_attributes = True

class TaskResponse(BaseModel):
    id: int
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    start_date: Optional[datetime]
    completed_at: Optional[datetime]
    estimated_hours: Optional[int]
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    # Related data
    assignees: List[UserSummary] = []
    project: Optional[ProjectSummary] = None
    comment_count: int = 0
    attachment_count: int = 0
    overdue: bool = False
    hours_until_due: int = 0

    @classmethod
    def from_task(cls, task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=as_utc(task.due_date),
            start_date=as_utc(task.start_date),
            completed_at=as_utc(task.completed_at),
            estimated_hours=task.estimated_hours,
            notes=task.notes,
            created_at=as_utc(task.created_at),
            updated_at=as_utc(task.updated_at),
            assignees=[UserSummary.model_validate(u) for u in sorted(task.assignees, key=lambda u: u.id)],
            project=ProjectSummary.model_validate(task.project) if task.project is not None else None,
            comment_count=len(task.comments),
            attachment_count=len(task.attachments),
            overdue=task.is_overdue(),
            hours_until_due=task.hours_until_due(),
        )
