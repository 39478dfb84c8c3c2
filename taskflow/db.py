import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from taskflow.config import settings
from taskflow.errors import TransactionFailure

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# one unit of work: commit on success, rollback on every other exit
@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("transaction rolled back: %s", e.__class__.__name__)
        raise TransactionFailure(f"{e.__class__.__name__}") from e
    except BaseException:
        db.rollback()
        raise

# db connectivity check
def db_ping() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
    except Exception:
        return False
