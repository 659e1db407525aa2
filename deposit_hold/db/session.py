from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from deposit_hold.core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


# Engines connect lazily; nothing touches the database unless STORAGE_BACKEND=sql.
engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
