"""
Database configuration and session management
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from config import Config
import logging

logger = logging.getLogger(__name__)

async_database_url = Config.DATABASE_URL.replace('postgresql://', 'postgresql+asyncpg://')

async_engine = create_async_engine(
    async_database_url,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=10,
    pool_recycle=3600,
    pool_timeout=10,
    echo=False,
    pool_reset_on_return='rollback',
    connect_args={
        'timeout': 10,  # Connection timeout
        'command_timeout': 30,  # Command execution timeout
    }
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

Base = declarative_base()


async def init_db():
    """Create all tables defined in models (no-op for tables that exist)"""
    from models.db import Chat, ChatMessage  # noqa: F401
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
