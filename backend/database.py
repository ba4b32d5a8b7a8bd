from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

from config import settings

# ============================================================
# ENGINE
# ============================================================

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    poolclass=NullPool,
    connect_args=connect_args,
)

# ============================================================
# SESSION MAKERS
# ============================================================

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# ============================================================
# Base class
# ============================================================

Base = declarative_base()

# ============================================================
# FastAPI dependency
# ============================================================

async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session

# ============================================================
# Create tables
# ============================================================

async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
