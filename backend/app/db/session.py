"""
Async engine, session factory and the unit-of-work helper.

Every wallet mutation runs inside `atomic`, so a booking status change and
its ledger movement land in the same database transaction.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backend.app.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()

# Session.info key marking an open unit of work
_UNIT_OF_WORK_KEY = "unit_of_work_open"


async def get_db():
    """Request-scoped session; anything left uncommitted is rolled back on close."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block as a single unit of work.

    The outermost block commits on exit and rolls back (then re-raises) on
    any exception. Nested blocks join the enclosing unit, so a booking status
    write and the ledger operation it triggers commit or fail together.

    Usage:
        async with atomic(db):
            await TransactionEngine.complete_transaction(db, transaction_id)
            booking.status = ...
    """
    if db.info.get(_UNIT_OF_WORK_KEY):
        yield db
        return

    db.info[_UNIT_OF_WORK_KEY] = True
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
    finally:
        db.info[_UNIT_OF_WORK_KEY] = False
