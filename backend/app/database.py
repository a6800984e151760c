from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.settings import settings


data_engine = create_async_engine(settings.database_url, future=True)
AsyncSessionMaker = async_sessionmaker(data_engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    # register tables on Base.metadata
    import app.models  # noqa: F401

    async with data_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
