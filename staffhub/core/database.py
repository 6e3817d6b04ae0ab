from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from staffhub.core.config import settings


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        # Development and tests; in-memory databases must share one connection
        engine_args = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite+pysqlite://"):
            engine_args["poolclass"] = StaticPool
        return create_engine(database_url, **engine_args)

    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,  # Detect stale connections before handing them out
        pool_recycle=3600,
        pool_timeout=30,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
