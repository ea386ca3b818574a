from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from approvals.settings import settings


def _make_engine(url: str):
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {}
    )


# Payment requests, access grants and collections
engine = _make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

# User accounts live in a separate database; no cross-database joins
users_engine = _make_engine(settings.users_database_url)
UsersSessionLocal = sessionmaker(bind=users_engine, autocommit=False, autoflush=False)
UsersBase = declarative_base()
