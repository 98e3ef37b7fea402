import argparse
import asyncio

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskboard import models  # noqa: F401
from taskboard.config import settings
from taskboard.models.base import Base
from taskboard.utils.logger import setup_logger

logger = setup_logger("db")

if not settings.app_database_url:
    raise ValueError(
        "TASKBOARD_DATABASE_URL environment variable not set for Application DB"
    )

if settings.app_database_url.startswith("postgresql://"):
    settings.app_database_url = settings.app_database_url.replace(
        "postgresql://", "postgresql+asyncpg://", 1
    )

if not settings.app_database_url.startswith(
    ("postgresql+asyncpg://", "sqlite+aiosqlite://")
):
    raise ValueError(
        f"Unsupported settings.app_database_url prefix: {settings.app_database_url}"
    )


def build_engine(database_url: str, echo: bool = False):
    """Create the async engine with pool settings suited to the backend."""
    if database_url.startswith("sqlite"):
        engine_kwargs = {"connect_args": {"check_same_thread": False}}
        # Every connection to ":memory:" is a separate database; share one.
        if ":memory:" in database_url or database_url.rstrip("/").endswith(
            "sqlite+aiosqlite:"
        ):
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs = {
            "pool_pre_ping": True,
            "pool_size": 20,
            "max_overflow": 30,
            "pool_timeout": 60,
            "pool_recycle": 300,
            "connect_args": {"timeout": 30},
        }
    return create_async_engine(database_url, echo=echo, **engine_kwargs)


def build_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


logger.debug(f"Application DB URL: {settings.app_database_url}")
app_engine = build_engine(settings.app_database_url, echo=settings.db_echo)
AppAsyncSessionLocal = build_session_factory(app_engine)


async def init_db():
    """Create all tables that do not exist yet."""
    logger.debug(
        f"Tables registered in Base.metadata: {list(Base.metadata.tables.keys())}"
    )
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized.")


async def close_db():
    """Closes database connections."""
    logger.info("Closing database connections.")
    await app_engine.dispose()
    logger.info("Database connections closed.")


async def list_tables() -> list[str]:
    """Lists the tables present in the application database."""
    async with app_engine.connect() as conn:
        table_names = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_table_names()
        )

    if table_names:
        logger.info(f"Tables in Application DB: {table_names}")
    else:
        logger.info("No tables found in Application DB.")
    return table_names


async def reset_db():
    logger.warning(
        "Attempting to reset the Application database. THIS IS A DESTRUCTIVE OPERATION."
    )
    async with app_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        logger.info("All application tables dropped.")

    await init_db()
    logger.info("Application database has been reset and re-initialized.")


async def rebuild_pending_tasks():
    """Recompute every user's pending task list from the tasks table."""
    from taskboard.db_handlers.user import UserDBHandler

    updated = await UserDBHandler().rebuild_pending_tasks()
    logger.info(f"Pending task lists rebuilt, {updated} users changed.")
    return updated


async def check_db_connection(engine_to_check=None, db_name="Application DB"):
    """Performs a simple query to check actual DB connectivity."""
    if engine_to_check is None:
        engine_to_check = app_engine

    session_maker = build_session_factory(engine_to_check)
    async with session_maker() as session:
        try:
            result = await session.execute(text("SELECT 1"))
            if result.scalar_one() == 1:
                logger.info(
                    f"Successfully connected to {db_name} and executed a test query."
                )
                return True
            raise RuntimeError(
                f"Test query to {db_name} returned an unexpected result."
            )
        except Exception as e:
            logger.error(
                f"Failed to execute test query on {db_name}: {e}", exc_info=True
            )
            raise RuntimeError(
                f"Database connectivity check failed for {db_name}."
            ) from e


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Taskboard Application Database Utility"
    )
    parser.add_argument(
        "action",
        choices=["init", "reset", "list-tables", "rebuild-pending"],
        help="'init' to create missing tables, "
        "'reset' to drop and recreate all tables, "
        "'list-tables' to show the tables in the database, "
        "'rebuild-pending' to recompute every user's pendingTasks from the tasks table.",
    )
    args = parser.parse_args()

    if args.action == "init":
        asyncio.run(init_db())
    elif args.action == "reset":
        confirm = input(
            "WARNING: This will delete all data in the Application DB. Are you sure? (yes/no): "
        )
        if confirm.lower() == "yes":
            asyncio.run(reset_db())
        else:
            logger.info("Application Database reset cancelled by user.")
    elif args.action == "list-tables":
        asyncio.run(list_tables())
    elif args.action == "rebuild-pending":
        asyncio.run(rebuild_pending_tasks())
    logger.info("Application Database utility script finished.")
