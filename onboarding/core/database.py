# =====================================================
# FILE: onboarding/core/database.py
# Database Connection and Session Management
# =====================================================

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import NullPool, QueuePool
from typing import Generator
from urllib.parse import quote_plus
import logging

from onboarding.core.config import settings

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# URL-encode the password to handle special characters like @ # $ etc.
encoded_password = quote_plus(settings.DB_PASSWORD)
DATABASE_URL = f"mysql+pymysql://{settings.DB_USER}:{encoded_password}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"

# Database engine configuration
engine_args = {
    "pool_pre_ping": settings.DB_POOL_PRE_PING,
    "echo": settings.DB_ECHO,
}

if settings.DEBUG:
    engine_args["poolclass"] = NullPool
else:
    engine_args["pool_size"] = settings.DB_POOL_SIZE
    engine_args["max_overflow"] = settings.DB_MAX_OVERFLOW
    engine_args["poolclass"] = QueuePool

engine = create_engine(DATABASE_URL, **engine_args)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


def check_connection(db: Session) -> bool:
    """Check that the database behind ``db`` answers a trivial query"""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {str(e)}")
        db.rollback()
        return False


def init_db(bind=None):
    """
    Create all tables in the database
    """
    # Register every table on Base.metadata
    import onboarding.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {str(e)}")
        raise
