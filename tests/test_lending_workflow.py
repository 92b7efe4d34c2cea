import pytest
from sqlalchemy import select

import crud
import lending
from orm import ComponentORM, TransactionLogORM


def test_issue_then_return_restores_quantity(client, make_component, issue):
    c = make_component(quantity=10)

    r = issue(c["id"], quantity=3)
    assert r.status_code == 201, r.text
    borrow = r.json()
    assert borrow["status"] == "Borrowed"
    assert borrow["quantity"] == 3
    assert borrow["component_name"] == "Arduino Uno"
    assert borrow["return_date"] is None

    r = client.get(f"/components/{c['id']}")
    assert r.json()["available_quantity"] == 7
    assert r.json()["total_quantity"] == 10

    # more than is left on the shelf
    r = issue(c["id"], quantity=8)
    assert r.status_code == 409
    assert r.json()["detail"] == "requested quantity 8 exceeds available quantity 7"
    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 7

    r = client.post(f"/logs/{borrow['id']}/return", json={"remarks": "all fine"})
    assert r.status_code == 201, r.text
    returned = r.json()
    assert returned["status"] == "Returned"
    assert returned["borrow_id"] == borrow["id"]
    assert returned["remarks"] == "all fine"
    assert returned["return_date"] is not None

    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 10


def test_return_appends_and_keeps_borrow_row(client, db_session, make_component, issue):
    c = make_component(quantity=2)
    borrow = issue(c["id"], quantity=1).json()

    client.post(f"/logs/{borrow['id']}/return")

    rows = db_session.execute(select(TransactionLogORM)).scalars().all()
    assert sorted(r.status for r in rows) == ["Borrowed", "Returned"]

    original = client.get(f"/logs/{borrow['id']}").json()
    assert original["status"] == "Borrowed"
    assert original["return_date"] is None

    assert lending.is_open(db_session, borrow["id"]) is False
    assert lending.get_closing_return(db_session, borrow["id"]) is not None


def test_double_return_is_rejected(client, make_component, issue):
    c = make_component(quantity=5)
    borrow = issue(c["id"], quantity=2).json()

    assert client.post(f"/logs/{borrow['id']}/return").status_code == 201
    r = client.post(f"/logs/{borrow['id']}/return")
    assert r.status_code == 409
    assert r.json()["detail"] == "this borrow has already been returned"

    # not incremented twice
    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 5


def test_return_of_returned_row_or_unknown_log(client, make_component, issue):
    c = make_component(quantity=5)
    borrow = issue(c["id"]).json()
    returned = client.post(f"/logs/{borrow['id']}/return").json()

    r = client.post(f"/logs/{returned['id']}/return")
    assert r.status_code == 409
    assert r.json()["detail"] == "only a Borrowed log can be returned"

    r = client.post("/logs/nope/return")
    assert r.status_code == 404


def test_issue_unknown_component_is_404(issue):
    r = issue("missing-id")
    assert r.status_code == 404


def test_issue_validation(client, make_component, next_week):
    c = make_component()
    base = {
        "component_id": c["id"],
        "quantity": 1,
        "user_name": "Alice",
        "purpose": "Line follower robot for the club contest",
        "expected_return_date": next_week,
    }

    r = client.post("/issues", json={**base, "purpose": "robot"})
    assert r.status_code == 422
    assert "Please provide a more detailed purpose." in r.text

    r = client.post("/issues", json={**base, "quantity": 0})
    assert r.status_code == 422

    r = client.post("/issues", json={**base, "expected_return_date": "2000-01-01"})
    assert r.status_code == 422

    r = client.post("/issues", json={**base, "user_name": "  "})
    assert r.status_code == 422

    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 10


def test_return_is_capped_at_total_after_edit(client, make_component, issue):
    c = make_component(quantity=5)
    borrow = issue(c["id"], quantity=3).json()

    # cut total below the amount on loan
    r = client.patch(f"/components/{c['id']}", json={"total_quantity": 2})
    assert r.json()["available_quantity"] == 0

    client.post(f"/logs/{borrow['id']}/return")
    comp = client.get(f"/components/{c['id']}").json()
    assert comp["available_quantity"] == 2
    assert comp["total_quantity"] == 2


def test_open_borrows_and_borrowers(client, db_session, make_component, issue):
    a = make_component(name="Servo", category="Motors", quantity=4)
    b = make_component(name="Breadboard", category="Prototyping", quantity=4)
    first = issue(a["id"], user_name="Alice").json()
    issue(b["id"], user_name="Bob")
    issue(b["id"], user_name="Alice")
    client.post(f"/logs/{first['id']}/return")

    r = client.get("/logs/open")
    assert r.status_code == 200
    assert len(r.json()) == 2

    r = client.get("/logs/open", params={"user_name": "Alice"})
    assert [l["component_name"] for l in r.json()] == ["Breadboard"]

    assert lending.list_borrowers(db_session) == ["Alice", "Bob"]
    assert crud.count_open_borrows(db_session, component_id=a["id"]) == 0


def test_issue_commit_false_rollback_discards_both_writes(db_session, make_component, next_week):
    from datetime import date
    from models import IssueRequest

    c = make_component(quantity=4)
    body = IssueRequest(
        component_id=c["id"],
        quantity=2,
        user_name="Carol",
        purpose="Testing motor drivers for the arm",
        expected_return_date=date.fromisoformat(next_week),
    )
    log = lending.issue_component(db_session, body, commit=False)

    db_session.rollback()
    db_session.expire_all()

    assert crud.get_log(db_session, log.id) is None
    assert crud.get_component(db_session, c["id"]).available_quantity == 4


def test_return_commit_false_requires_manual_commit(db_session, make_component, issue):
    c = make_component(quantity=4)
    borrow = issue(c["id"], quantity=4).json()

    returned = lending.return_borrow(db_session, borrow["id"], commit=False)
    db_session.commit()
    db_session.expire_all()

    assert crud.get_log(db_session, returned.id).borrow_id == borrow["id"]
    assert crud.get_component(db_session, c["id"]).available_quantity == 4


def test_stale_second_issuer_cannot_overdraw(db_session, make_component, next_week):
    from datetime import date
    from db import SessionLocal
    from models import IssueRequest

    c = make_component(quantity=3)

    def body():
        return IssueRequest(
            component_id=c["id"],
            quantity=2,
            user_name="Dana",
            purpose="Drive train prototype for the rover",
            expected_return_date=date.fromisoformat(next_week),
        )

    stale = SessionLocal()
    try:
        # second issuer read 3 available before the first one committed
        assert stale.get(ComponentORM, c["id"]).available_quantity == 3

        lending.issue_component(db_session, body())

        with pytest.raises(lending.InsufficientQuantity) as exc:
            lending.issue_component(stale, body())
        assert exc.value.available == 1
        assert exc.value.message == "requested quantity 2 exceeds available quantity 1"
    finally:
        stale.close()

    db_session.expire_all()
    assert crud.get_component(db_session, c["id"]).available_quantity == 1
    assert len(lending.list_open_borrows(db_session, component_id=c["id"])) == 1
