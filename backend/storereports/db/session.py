import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storereports.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Create backend/.env or export it in your shell.")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    """Create tables if they don't exist."""
    from storereports.db.base import Base
    from storereports.db import models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind=bind or engine)
    logger.info("database schema ready")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
