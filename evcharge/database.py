from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from evcharge.config import settings

Base = declarative_base()

def build_engine(database_url: str, echo: bool = False):
    """Create an engine, with the SQLite options needed under FastAPI's threadpool"""
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            # A single shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)

engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """Yield a database session for the duration of a request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables"""
    # Import models so they register on Base.metadata
    from evcharge import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
