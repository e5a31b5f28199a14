from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import NullPool

from bridgescope.config import settings


def build_engine(url: str, worker: bool = False):
    """Pooled engine for the API, NullPool for Celery workers (fork-safe)."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    if worker:
        return create_engine(url, pool_pre_ping=True, poolclass=NullPool)
    return create_engine(url, pool_pre_ping=True, pool_size=10, max_overflow=20)


def build_session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = scoped_session(build_session_factory(engine))

worker_engine = build_engine(settings.DATABASE_URL, worker=True)
WorkerSessionLocal = scoped_session(build_session_factory(worker_engine))


def ping(bind) -> None:
    """Raises if the database is unreachable."""
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
