from __future__ import annotations

from pathlib import Path
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def _ensure_sqlite_dirs(url: str) -> None:
    if not url.startswith("sqlite+aiosqlite:///"):
        return
    path = url.replace("sqlite+aiosqlite:///", "", 1)
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def build_sqlite_async_url(db_path: str | Path) -> str:
    path = Path(db_path)
    return f"sqlite+aiosqlite:///{path}"


def normalize_async_db_url(db_url: str | Path) -> str:
    """Map plain paths and sync driver URLs onto their async drivers."""
    url = str(db_url)
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if "://" not in url:
        return build_sqlite_async_url(url)
    return url


def create_async_engine_and_session(db_url: str) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    _ensure_sqlite_dirs(db_url)
    engine = create_async_engine(db_url, future=True, echo=False)
    SessionLocal = async_sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    return engine, SessionLocal
