# backend/app/database.py
"""
Database engine and session management.

The engine is NOT created at import time. The application lifespan (or a
script entry point) calls create_db_engine() once, keeps the engine and the
session factory on app.state, and disposes the engine on shutdown.
Components receive sessions (or the session factory) explicitly.

Pool Configuration (configurable via environment variables):
- DB_POOL_SIZE: Persistent connections (default: 5)
- DB_POOL_MAX_OVERFLOW: Burst capacity (default: 10)
- DB_POOL_RECYCLE: Connection lifetime (default: 3600s)
- DB_POOL_PRE_PING: Health checks (default: True)
- DB_STATEMENT_TIMEOUT_MS: Server-side statement timeout (PostgreSQL)
"""

import logging
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool, QueuePool

from app.config import Settings

logger = logging.getLogger(__name__)

# Seconds a SQLite writer waits on a locked database before failing
SQLITE_BUSY_TIMEOUT_SECONDS = 30


def create_db_engine(config: Settings) -> Engine:
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    - In-memory SQLite: StaticPool so the one database is shared across threads
    - File SQLite: QueuePool, one connection per checkout, busy timeout for writers
    - PostgreSQL: QueuePool with configurable pooling and statement timeout
    """
    if config.is_sqlite_memory:
        logger.info("Configuring in-memory SQLite database")
        return create_engine(
            config.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=config.debug,
        )

    if config.is_sqlite:
        logger.info("Configuring file-backed SQLite database")
        return create_engine(
            config.database_url,
            poolclass=QueuePool,
            pool_size=config.db_pool_size,
            max_overflow=config.db_pool_max_overflow,
            pool_timeout=30,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
            echo=config.debug,
        )

    logger.info(
        f"Configuring PostgreSQL database pool: "
        f"size={config.db_pool_size}, "
        f"max_overflow={config.db_pool_max_overflow}, "
        f"recycle={config.db_pool_recycle}s, "
        f"statement_timeout={config.db_statement_timeout_ms}ms"
    )

    connect_args = {}
    if config.db_statement_timeout_ms:
        connect_args["options"] = f"-c statement_timeout={config.db_statement_timeout_ms}"

    return create_engine(
        config.database_url,
        poolclass=QueuePool,
        pool_size=config.db_pool_size,
        max_overflow=config.db_pool_max_overflow,
        pool_recycle=config.db_pool_recycle,
        pool_pre_ping=config.db_pool_pre_ping,
        pool_timeout=30,
        connect_args=connect_args,
        echo=config.debug,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency that provides a request-scoped database session.

    The session factory is owned by the application lifespan and stored on
    app.state.session_factory.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def check_database_health(db: Session) -> dict:
    """
    Check database connectivity.

    The failure reason is logged, never returned, since the result is
    served to unauthenticated health probes.

    Returns:
        dict: {"status": "healthy"} or {"status": "unhealthy"}
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy"}
