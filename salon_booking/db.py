# salon_booking/db.py

import logging

from sqlmodel import SQLModel, Session, create_engine

from .config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread off for FastAPI's threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    echo=DB_ECHO,
    connect_args=connect_args,
)


def create_db_and_tables():
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
