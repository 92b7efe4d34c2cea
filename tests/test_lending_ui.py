def _form(component_id, next_week, **overrides):
    data = {
        "component_id": component_id,
        "quantity": "2",
        "user_name": "Alice",
        "contact_number": "555-0100",
        "purpose": "Line follower robot for the club contest",
        "expected_return_date": next_week,
    }
    data.update(overrides)
    return data


def test_issue_form_lists_only_available_components(client, make_component, issue):
    make_component(name="Servo", category="Motors", quantity=1)
    gone = make_component(name="Stepper", category="Motors", quantity=1)
    issue(gone["id"])

    r = client.get("/ui/issue")
    assert r.status_code == 200
    assert "Servo" in r.text
    assert "Stepper" not in r.text


def test_issue_form_success_redirects(client, make_component, next_week):
    c = make_component(quantity=5)
    r = client.post("/ui/issue", data=_form(c["id"], next_week), follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/ui/logs"
    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 3


def test_issue_form_validation_errors(client, make_component, next_week):
    c = make_component(quantity=5)
    r = client.post("/ui/issue", data=_form(c["id"], next_week, purpose="robot"))
    assert r.status_code == 422
    assert "Please provide a more detailed purpose." in r.text

    r = client.post("/ui/issue", data=_form(c["id"], next_week, quantity="9"))
    assert r.status_code == 409
    assert "exceeds available quantity 5" in r.text

    r = client.post("/ui/issue", data=_form("missing", next_week))
    assert r.status_code == 404


def test_issue_form_blocked_by_warning(client, checker, make_component, next_week):
    c = make_component(quantity=5)
    r = client.post("/ui/issue", data=_form(c["id"], next_week, purpose="Building a weapon to test"))
    assert r.status_code == 422
    assert checker.warning in r.text
    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 5


def test_return_page_and_form(client, make_component, issue):
    c = make_component(name="Servo", category="Motors", quantity=5)
    borrow = issue(c["id"], quantity=2, user_name="Alice").json()

    r = client.get("/ui/return")
    assert "Alice" in r.text

    r = client.get("/ui/return", params={"user_name": "Alice"})
    assert f"/ui/logs/{borrow['id']}/return" in r.text

    r = client.post(
        f"/ui/logs/{borrow['id']}/return",
        data={"return_date": "2030-01-15", "remarks": "one wire bent"},
        follow_redirects=False,
    )
    assert r.status_code == 303
    assert r.headers["location"] == "/ui/logs"

    returned = client.get("/logs", params={"status": "returned"}).json()[0]
    assert returned["return_date"].startswith("2030-01-15")
    assert returned["remarks"] == "one wire bent"

    # second submit from a stale page
    r = client.post(f"/ui/logs/{borrow['id']}/return", follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"].startswith("/ui/return?error=")


def test_return_form_rejects_bad_date(client, make_component, issue):
    c = make_component(quantity=5)
    borrow = issue(c["id"]).json()
    r = client.post(
        f"/ui/logs/{borrow['id']}/return",
        data={"return_date": "15/01/2030"},
        follow_redirects=False,
    )
    assert r.headers["location"].startswith("/ui/return?error=")
    assert client.get(f"/components/{c['id']}").json()["available_quantity"] == 4
    assert client.get("/logs/open").json()[0]["id"] == borrow["id"]


def test_return_page_drops_borrower_once_returned(client, make_component, issue):
    c = make_component(quantity=5)
    alice = issue(c["id"], user_name="Alice").json()
    issue(c["id"], user_name="Bob")

    r = client.get("/ui/return")
    assert '<option value="Alice"' in r.text
    assert '<option value="Bob"' in r.text

    client.post(f"/ui/logs/{alice['id']}/return")
    r = client.get("/ui/return")
    assert '<option value="Alice"' not in r.text
    assert '<option value="Bob"' in r.text


def test_issue_page_clears_warning_for_short_purpose(client):
    r = client.get("/ui/issue")
    assert 'if (purpose.value.trim().length < MIN_LENGTH) { show(""); return; }' in r.text
    assert "var DEBOUNCE_MS = 1000;" in r.text
