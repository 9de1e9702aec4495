"""Database setup.

Provides the SQLAlchemy declarative base plus helpers to build engines and
session factories for a given URL.

Defaults to an on-disk SQLite database under ``data/homedash.db`` at the
repository root, but respects an explicit environment override via
``HOMEDASH_DB_URL`` (or ``HOMEDASH_DATABASE_URL``) for testing or custom
setups. Nothing here opens a connection at import time; callers build
their own engine and hand the session factory to ``ConfigStore``.
"""
from __future__ import annotations

import os
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from homedash_core.config import Settings

Base = declarative_base()


def _ensure_sqlite_dir(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite") and parsed.path and parsed.path != "/:memory:":
        # parsed.path is an absolute path for sqlite URLs with 3+ slashes
        _dir = os.path.dirname(parsed.path)
        if _dir:
            os.makedirs(_dir, exist_ok=True)


def create_db_engine(url: Optional[str] = None) -> Engine:
    url = url or Settings().effective_database_url()
    connect_args = {}
    if url.startswith("sqlite"):
        _ensure_sqlite_dir(url)
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


__all__ = [
    "Base",
    "create_db_engine",
    "create_session_factory",
]
