import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from sqlalchemy import text
from config import settings
from tenacity import retry, stop_after_attempt, wait_fixed, retry_if_exception_type

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url_async

engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    # aiosqlite connections are bound to the loop that opened them
    engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": NullPool,
    }

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DB_ECHO,
    future=True,
    **engine_kwargs
)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    """Dependency for getting async database sessions.

    Anything raised while the request holds the session rolls back the
    open transaction before the error response is rendered.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@retry(
    retry=retry_if_exception_type((ConnectionRefusedError, OSError)),
    stop=stop_after_attempt(settings.DB_CONNECT_ATTEMPTS),
    wait=wait_fixed(settings.DB_CONNECT_WAIT_SECONDS),
    reraise=True,
    before_sleep=lambda retry_state: logger.warning(
        f"Database connection attempt {retry_state.attempt_number} failed. "
        f"Retrying in {settings.DB_CONNECT_WAIT_SECONDS} seconds... "
        f"(Error: {retry_state.outcome.exception()})"
    )
)
async def init_db():
    """
    Initialize database tables and schema with retry logic.

    Connection refusals are retried so the API can start while the
    database container is still coming up.
    """
    logger.info("Attempting to connect to database and run migrations...")

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection successful!")

        # Import here to avoid circular imports
        from migrations.schema_migrations import run_migrations
        await run_migrations()

        logger.info("Database initialization complete!")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
