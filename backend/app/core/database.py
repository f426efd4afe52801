import logging
from contextlib import asynccontextmanager

from sqlalchemy import Boolean, Column, DateTime, event, false
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import Session, sessionmaker, declarative_base, with_loader_criteria
from .config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    args = {"server_settings": {"application_name": "taskflow"}}
    if settings.DB_SSL:
        args["ssl"] = "require"
    return args


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    connect_args=_connect_args(settings.DATABASE_URL),
)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


class SoftDeleteMixin:
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


@event.listens_for(Session, "do_orm_execute")
def _exclude_deleted_rows(execute_state):
    """Default scope: soft-deleted rows are invisible to ORM selects.

    Pass ``execution_options(include_deleted=True)`` to bypass the filter.
    Relationship and column loads inherit the criteria from the parent
    statement, so they are skipped here.
    """
    if (
        execute_state.is_select
        and not execute_state.is_column_load
        and not execute_state.is_relationship_load
        and not execute_state.execution_options.get("include_deleted", False)
    ):
        execute_state.statement = execute_state.statement.options(
            with_loader_criteria(
                SoftDeleteMixin,
                lambda cls: cls.deleted == false(),
                include_aliases=True,
            )
        )


@asynccontextmanager
async def transaction(session: AsyncSession):
    """Commit everything done inside the block, or nothing."""
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        logger.debug("Transaction rolled back")
        raise


async def create_all(bind=engine):
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session
