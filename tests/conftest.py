import os
import tempfile
from pathlib import Path

# must be set before db is imported
_TMP_DIR = Path(tempfile.mkdtemp(prefix="kitlend_test_"))
os.environ["APP_DB_PATH"] = str(_TMP_DIR / "test_kitlend.db")
os.environ["SANITY_CHECK_MODE"] = "remote"
os.environ.pop("GEMINI_API_KEY", None)

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

from models import SanityCheckResult


class FakeChecker:
    """Flags any purpose containing one of ``blocked``; raises when ``broken``."""

    def __init__(self):
        self.blocked = ("weapon",)
        self.warning = "Building weapons is against club rules."
        self.broken = False
        self.calls = []

    def check(self, purpose, component_name):
        self.calls.append((purpose, component_name))
        if self.broken:
            raise ConnectionError("classifier unreachable")
        if any(word in purpose.lower() for word in self.blocked):
            return SanityCheckResult(is_safe=False, warning_message=self.warning)
        return SanityCheckResult(is_safe=True, warning_message="")


@pytest.fixture(scope="session")
def app_module():
    import main

    return main


@pytest.fixture()
def checker():
    return FakeChecker()


@pytest.fixture()
def client(app_module, checker):
    from db import SessionLocal
    from dependencies import get_db, get_sanity_checker

    def _get_db_override():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[get_db] = _get_db_override
    app_module.app.dependency_overrides[get_sanity_checker] = lambda: checker
    with TestClient(app_module.app) as c:
        yield c
    app_module.app.dependency_overrides.clear()


@pytest.fixture()
def db_session(app_module):
    from db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def clean_db(app_module, db_session):
    from cache import snapshots
    from orm import CategoryORM, ComponentORM, TransactionLogORM, UserORM

    db_session.execute(delete(TransactionLogORM))
    db_session.execute(delete(ComponentORM))
    db_session.execute(delete(CategoryORM))
    db_session.execute(delete(UserORM))
    db_session.commit()
    snapshots.clear()
    yield


@pytest.fixture()
def next_week():
    return (date.today() + timedelta(days=7)).isoformat()


@pytest.fixture()
def make_component(client):
    def _make(name="Arduino Uno", category="Microcontrollers", quantity=10, **extra):
        r = client.post(
            "/components",
            json={"name": name, "category": category, "quantity": quantity, **extra},
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture()
def issue(client, next_week):
    def _issue(component_id, quantity=1, user_name="Alice", purpose="Line follower robot for the club contest"):
        return client.post(
            "/issues",
            json={
                "component_id": component_id,
                "quantity": quantity,
                "user_name": user_name,
                "contact_number": "555-0100",
                "purpose": purpose,
                "expected_return_date": next_week,
            },
        )

    return _issue
