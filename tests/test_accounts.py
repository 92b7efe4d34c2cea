from sqlalchemy import select
from werkzeug.security import check_password_hash

from orm import UserORM


def _register(client, email="ada@example.com", password="secret123"):
    r = client.post(
        "/users",
        json={"name": "Ada", "email": email, "password": password, "confirm_password": password},
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_register_hashes_password_and_defaults_role(client, db_session):
    user = _register(client, email="Ada@Example.com")
    assert user["email"] == "ada@example.com"
    assert user["role"] == "admin"
    assert user["avatar"].endswith("text=A")

    row = db_session.execute(select(UserORM).where(UserORM.id == user["id"])).scalar_one()
    assert row.password_hash != "secret123"
    assert check_password_hash(row.password_hash, "secret123")


def test_register_rejects_duplicates_and_bad_input(client):
    _register(client)
    r = client.post(
        "/users",
        json={"name": "Other", "email": "ada@example.com", "password": "secret123", "confirm_password": "secret123"},
    )
    assert r.status_code == 409

    r = client.post(
        "/users",
        json={"name": "Bob", "email": "bob@example.com", "password": "secret123", "confirm_password": "secret124"},
    )
    assert r.status_code == 422

    r = client.post(
        "/users",
        json={"name": "Bob", "email": "bob@example.com", "password": "abc", "confirm_password": "abc"},
    )
    assert r.status_code == 422


def test_update_profile(client):
    user = _register(client)
    other = _register(client, email="grace@example.com")

    r = client.patch(f"/users/{user['id']}", json={"name": "Ada L."})
    assert r.json()["name"] == "Ada L."

    r = client.patch(f"/users/{user['id']}", json={"email": "grace@example.com"})
    assert r.status_code == 409

    assert client.patch("/users/missing", json={"name": "x"}).status_code == 404
    assert client.get(f"/users/{other['id']}").json()["email"] == "grace@example.com"


def test_change_password(client, db_session):
    user = _register(client)
    url = f"/users/{user['id']}/password"

    r = client.post(url, json={"current_password": "wrong", "new_password": "newpass1", "confirm_password": "newpass1"})
    assert r.status_code == 403

    r = client.post(url, json={"current_password": "secret123", "new_password": "newpass1", "confirm_password": "newpass1"})
    assert r.status_code == 204

    db_session.expire_all()
    row = db_session.get(UserORM, user["id"])
    assert check_password_hash(row.password_hash, "newpass1")


def test_register_and_account_ui(client):
    r = client.get("/ui/register")
    assert r.status_code == 200

    r = client.post(
        "/ui/register",
        data={"name": "Ada", "email": "ada@example.com", "password": "secret123", "confirm_password": "nope123"},
    )
    assert r.status_code == 422

    r = client.post(
        "/ui/register",
        data={"name": "Ada", "email": "ada@example.com", "password": "secret123", "confirm_password": "secret123"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    account_url = r.headers["location"]

    r = client.post(
        "/ui/register",
        data={"name": "Ada", "email": "ada@example.com", "password": "secret123", "confirm_password": "secret123"},
    )
    assert r.status_code == 409

    r = client.get(account_url)
    assert r.status_code == 200
    assert "ada@example.com" in r.text

    r = client.post(f"{account_url}/password", data={
        "current_password": "secret123", "new_password": "another1", "confirm_password": "another1",
    }, follow_redirects=False)
    assert "message=" in r.headers["location"]
