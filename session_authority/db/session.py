from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from session_authority.config import settings
from session_authority.db.base import Base

# aiosqlite connections belong to the event loop that opened them; do not pool them
_engine_kwargs = {"poolclass": NullPool} if settings.database_url.startswith("sqlite") else {}
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_kwargs,
)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    # Register all mapped tables on Base.metadata before create_all
    import session_authority.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
