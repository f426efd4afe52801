from sqlalchemy import Column, Integer, String, DateTime, Boolean, Date, Text

from app.core.database import Base
from app.core.timeutils import utcnow

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def is_active(self) -> bool:
        return bool(self.active)

    def archive(self):
        self.active = False

    def reactivate(self):
        self.active = True

    def __repr__(self):
        return f"Project(id={self.id}, name={self.name}, active={self.active})"
