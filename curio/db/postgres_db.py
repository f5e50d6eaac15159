from __future__ import annotations

import os
import socket
from contextlib import contextmanager
from typing import Iterator, Optional
from urllib.parse import urlparse, urlunparse

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from utils.config import is_database_force_ipv4


def _resolve_hostname_to_ipv4(hostname: str) -> str:
    """
    Resolve hostname to IPv4 address to avoid IPv6 connectivity issues.

    Hosted Postgres poolers often publish AAAA records that some VMs cannot reach.
    """
    try:
        addr_info = socket.getaddrinfo(hostname, None, socket.AF_INET, socket.SOCK_STREAM)
        if addr_info:
            return addr_info[0][4][0]
    except (socket.gaierror, OSError):
        pass
    return hostname


def _force_ipv4_in_url(url: str) -> str:
    """Rewrite the database URL host to its IPv4 address when one resolves."""
    parsed = urlparse(url)
    if parsed.hostname and is_database_force_ipv4():
        ipv4_addr = _resolve_hostname_to_ipv4(parsed.hostname)
        if ipv4_addr != parsed.hostname:
            netloc = parsed.netloc.replace(parsed.hostname, ipv4_addr)
            return urlunparse(parsed._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    """
    Get database connection URL from environment.

    Determines environment from ENVIRONMENT variable:
    - 'production' or 'prod' -> DATABASE_URL_PROD
    - 'staging' or 'stage' -> DATABASE_URL_STAGING
    - default -> DATABASE_URL_STAGING (for safety)

    Falls back to DATABASE_URL if specific env vars not set.
    """
    load_dotenv()
    env = os.getenv("ENVIRONMENT", "").lower()

    if env in ("production", "prod"):
        url = os.getenv("DATABASE_URL_PROD")
        if url:
            return _force_ipv4_in_url(url)

    if env in ("staging", "stage") or not env:
        url = os.getenv("DATABASE_URL_STAGING")
        if url:
            return _force_ipv4_in_url(url)

    url = os.getenv("DATABASE_URL")
    if url:
        return _force_ipv4_in_url(url)

    raise ValueError(
        "No database URL found. Set DATABASE_URL_PROD, DATABASE_URL_STAGING, or DATABASE_URL"
    )


_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create SQLAlchemy engine with connection pooling."""
    global _engine
    if _engine is None:
        _engine = create_engine(
            get_database_url(),
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=False,
        )
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


@contextmanager
def get_db_session() -> Iterator[Session]:
    """
    Context manager for database sessions.

    Automatically commits on success, rolls back on exception.
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_table_exists(session: Session, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = session.execute(
        text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = :table_name
            )
        """),
        {"table_name": table_name}
    ).scalar()
    return bool(result)
