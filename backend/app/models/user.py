from sqlalchemy import Column, Integer, String, DateTime, Boolean

from app.core.database import Base, SoftDeleteMixin
from app.core.timeutils import utcnow

class User(SoftDeleteMixin, Base):
    """Directory user. ``deleted`` rows are hidden from default ORM selects."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    full_name = Column(String(100), nullable=True)
    password_hash = Column(String(255), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def is_active(self) -> bool:
        return bool(self.active)

    def activate(self):
        self.active = True

    def deactivate(self):
        self.active = False

    def soft_delete(self):
        self.deleted = True
        self.deleted_at = utcnow()

    def restore(self):
        self.deleted = False
        self.deleted_at = None

    def __repr__(self):
        return f"User(id={self.id}, username={self.username}, active={self.active}, deleted={self.deleted})"
