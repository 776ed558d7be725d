from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings

def _engine_options(url: str) -> dict:
    options = {"echo": False, "future": True}
    # SQLite (local runs and tests) has its own pooling
    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_size=settings.DB_POOL_SIZE,       # Base connections
            max_overflow=settings.DB_MAX_OVERFLOW,  # Burst connections
        )
    return options

# PostgreSQL driver for async operations is asyncpg
engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

