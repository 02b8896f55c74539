import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from config import DATABASE_URL
from errors import CollaboratorError

logger = logging.getLogger(__name__)

Base = declarative_base()
db_engine = None
SessionLocal = None


def init_db(url: str = None):
    global db_engine, SessionLocal
    url = url or DATABASE_URL
    if not url:
        logger.warning("DATABASE_URL not set - running without database storage")
        return False

    if db_engine is not None:
        db_engine.dispose()

    url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("sqlite") and ":memory:" in url:
        # One shared connection so the in-memory database survives across sessions
        db_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif url.startswith("sqlite"):
        db_engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        db_engine = create_engine(url, pool_pre_ping=True)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    # Register every table on Base before create_all
    import models  # noqa: F401

    Base.metadata.create_all(bind=db_engine)
    logger.info("Database initialized (%s)", db_engine.url.get_backend_name())
    return True


def get_db():
    if SessionLocal is None:
        return None
    return SessionLocal()


def get_session():
    """FastAPI dependency yielding a session that is always closed."""
    db = get_db()
    if db is None:
        raise CollaboratorError("Database is not configured")
    try:
        yield db
    finally:
        db.close()
