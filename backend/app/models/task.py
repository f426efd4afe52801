from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Table, Enum
from sqlalchemy.orm import relationship, validates

from app.core.database import Base
from app.core.exceptions import InvalidTransitionError, ValidationError
from app.core.timeutils import as_utc, utcnow
from app.models.attachment import Attachment
from app.models.comment import Comment
from app.models.project import Project
from app.models.user import User
from app.schemas.task import (
    DESCRIPTION_MAX,
    DESCRIPTION_MIN,
    ESTIMATED_HOURS_MAX,
    NOTES_MAX,
    TITLE_MAX,
    TITLE_MIN,
    TaskPriority,
    TaskStatus,
)

# Plain relation, no attributes; the composite key keeps (task, user) unique.
task_assignees = Table(
    "task_assignees",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True),
)

START_FROM = (TaskStatus.PENDING, TaskStatus.BLOCKED)
COMPLETE_FROM = (TaskStatus.IN_PROGRESS,)

class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(TITLE_MAX), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(Enum(TaskStatus, native_enum=False, length=20), nullable=False,
                    default=TaskStatus.PENDING, index=True)
    priority = Column(Enum(TaskPriority, native_enum=False, length=20), nullable=False,
                      default=TaskPriority.MEDIUM, index=True)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    estimated_hours = Column(Integer, nullable=True)
    notes = Column(String(NOTES_MAX), nullable=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship(Project)
    assignees = relationship(User, secondary=task_assignees, collection_class=set)
    comments = relationship(Comment, back_populates="task", cascade="all, delete-orphan")
    attachments = relationship(Attachment, back_populates="task", cascade="all, delete-orphan")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", TaskStatus.PENDING)
        kwargs.setdefault("priority", TaskPriority.MEDIUM)
        super().__init__(**kwargs)

    # -------------------- field checks --------------------
    @validates("title")
    def _validate_title(self, key, value):
        if value is None or not value.strip() or not TITLE_MIN <= len(value) <= TITLE_MAX:
            raise ValidationError(
                f"Task title must be between {TITLE_MIN} and {TITLE_MAX} characters", field=key
            )
        return value

    @validates("description")
    def _validate_description(self, key, value):
        if value is None or not value.strip() or not DESCRIPTION_MIN <= len(value) <= DESCRIPTION_MAX:
            raise ValidationError(
                f"Task description must be between {DESCRIPTION_MIN} and {DESCRIPTION_MAX} characters",
                field=key,
            )
        return value

    @validates("estimated_hours")
    def _validate_estimated_hours(self, key, value):
        if value is not None and not 0 <= value <= ESTIMATED_HOURS_MAX:
            raise ValidationError(
                f"Estimated hours must be between 0 and {ESTIMATED_HOURS_MAX}", field=key
            )
        return value

    @validates("notes")
    def _validate_notes(self, key, value):
        if value is not None and len(value) > NOTES_MAX:
            raise ValidationError(f"Notes cannot exceed {NOTES_MAX} characters", field=key)
        return value

    @validates("status")
    def _validate_status(self, key, value):
        return TaskStatus(value)

    @validates("priority")
    def _validate_priority(self, key, value):
        return TaskPriority(value)

    # -------------------- workflow --------------------
    def start(self):
        self._require_status("start", TaskStatus.IN_PROGRESS, START_FROM)
        self.set_status(TaskStatus.IN_PROGRESS)
        self.start_date = utcnow()

    def complete(self):
        self._require_status("complete", TaskStatus.COMPLETED, COMPLETE_FROM)
        self.set_status(TaskStatus.COMPLETED)

    def block(self, reason: str):
        if self.status.is_terminal:
            raise InvalidTransitionError(
                "block", self.status.value, TaskStatus.BLOCKED.value,
                [s.value for s in TaskStatus if not s.is_terminal],
            )
        if not reason or not reason.strip():
            raise ValidationError("Block reason is required", field="reason")
        line = f"[{utcnow():%Y-%m-%d %H:%M:%S} UTC] BLOCKED: {reason.strip()}"
        # notes first: an oversized note must leave the status untouched
        self.notes = f"{self.notes}\n{line}" if self.notes else line
        self.set_status(TaskStatus.BLOCKED)

    def cancel(self):
        if self.status == TaskStatus.COMPLETED:
            raise InvalidTransitionError(
                "cancel", self.status.value, TaskStatus.CANCELLED.value,
                [s.value for s in TaskStatus if s != TaskStatus.COMPLETED],
            )
        self.set_status(TaskStatus.CANCELLED)

    def set_status(self, new_status):
        """Administrative status change: no transition guard, only keeps
        ``completed_at`` set exactly while the task is COMPLETED."""
        new_status = TaskStatus(new_status)
        old_status = self.status
        if new_status == TaskStatus.COMPLETED and old_status != TaskStatus.COMPLETED:
            self.completed_at = utcnow()
        elif new_status != TaskStatus.COMPLETED:
            self.completed_at = None
        self.status = new_status

    def _require_status(self, action, target, allowed):
        if self.status not in allowed:
            raise InvalidTransitionError(
                action, self.status.value, target.value, [s.value for s in allowed]
            )

    # -------------------- derived --------------------
    def is_overdue(self) -> bool:
        return not self.status.is_terminal and utcnow() > as_utc(self.due_date)

    def hours_until_due(self) -> int:
        # truncated toward zero, negative once overdue
        return int((as_utc(self.due_date) - utcnow()).total_seconds() / 3600)

    def __repr__(self):
        return f"Task(id={self.id}, title={self.title}, status={self.status})"
