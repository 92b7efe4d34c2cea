from pathlib import Path
import os
import sys

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

DEFAULT_DB_NAME = "kitlend.db"


def app_root_dir() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent.parent
    return Path(__file__).resolve().parent


def resolve_db_path(root_dir: Path) -> Path:
    """APP_DB_PATH wins; relative paths are taken from the app root."""
    custom_path = os.getenv("APP_DB_PATH")
    if not custom_path:
        db_path = root_dir / "data" / DEFAULT_DB_NAME
    else:
        db_path = Path(custom_path).expanduser()
        if not db_path.is_absolute():
            db_path = (root_dir / db_path).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


ROOT_DIR = app_root_dir()
DB_PATH = resolve_db_path(ROOT_DIR)
DATABASE_URL = f"sqlite:///{DB_PATH.as_posix()}"

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)


@event.listens_for(engine, "connect")
def _sqlite_pragmas(dbapi_conn, _record):
    # concurrent issuers wait on the write lock instead of failing at once
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL")
    cur.execute("PRAGMA busy_timeout=30000")
    cur.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


def init_db() -> None:
    import orm  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(bind=engine)
