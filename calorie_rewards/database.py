"""
Database engine, session factory and the atomic unit of work.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from calorie_rewards.constants import DATABASE_URL
from calorie_rewards.exceptions import StorageUnavailableException

logger = logging.getLogger("calorie_rewards.database")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_DEPTH_KEY = "atomic_depth"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, operation: str = "transaction") -> Iterator[Session]:
    """
    Run a block as one atomic unit of work.

    The outermost block commits on success and rolls back on any error.
    Nested blocks on the same session join the outer unit, so a nested
    effect (level-up bonus, milestone bonus) commits or fails together
    with its trigger.

    Raises:
        StorageUnavailableException: if the database fails inside the unit
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except SQLAlchemyError as e:
        if depth == 0:
            db.rollback()
            logger.error(f"Atomic unit '{operation}' rolled back: {e}")
            raise StorageUnavailableException(operation, str(e)) from e
        raise
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info[_DEPTH_KEY] = depth


def insert_ignore(db: Session, model, values: Dict[str, Any]) -> int:
    """
    Insert a row unless it collides with a unique key.

    Returns:
        Number of rows inserted (0 when the row already existed)
    """
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(model).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql.insert(model).values(**values).on_conflict_do_nothing()
    else:
        stmt = insert(model).values(**values).prefix_with("IGNORE")
    return db.execute(stmt).rowcount
