from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.orm import Session

from db import SessionLocal
from sanity_check import PurposeChecker, build_checker


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=1)
def get_sanity_checker() -> PurposeChecker:
    return build_checker()
