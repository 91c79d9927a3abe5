from conftest import make_user, login
from models.contact_submission import ContactSubmission

IP = "198.51.100.4"

VALID = {"name": "Sam", "email": "sam@example.com", "message": "Hello there"}


def _submit(client, body=None, ip=IP):
    return client.post("/contact", json=body or VALID, headers={"X-Forwarded-For": ip})


def test_submission_is_stored(app, client):
    resp = _submit(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["rate_limit"] == {"remaining_attempts": 2, "limit": 3}

    with app.app_context():
        row = ContactSubmission.query.one()
        assert row.ip == IP
        assert row.status == "NEW"


def test_three_per_day_per_ip(client):
    for expected_left in (2, 1, 0):
        resp = _submit(client)
        assert resp.status_code == 201
        assert resp.get_json()["rate_limit"]["remaining_attempts"] == expected_left

    resp = _submit(client)
    assert resp.status_code == 429
    assert resp.get_json()["action"] == "contact"

    # other IPs are unaffected
    assert _submit(client, ip="198.51.100.5").status_code == 201


def test_invalid_submission_still_spends_budget(client):
    resp = _submit(client, body={"name": "", "email": "nope", "message": ""})
    assert resp.status_code == 400
    assert set(resp.get_json()["details"]) == {"name", "email", "message"}

    assert _submit(client).get_json()["rate_limit"]["remaining_attempts"] == 1


def test_contact_does_not_touch_login_budget(app, client):
    for _ in range(3):
        _submit(client)
    with app.app_context():
        make_user("alice")
    assert login(client, "alice", ip=IP).status_code == 200


def test_admin_lists_submissions(app, client, admin_client):
    _submit(client)
    rows = admin_client.get("/admin/contact-submissions").get_json()
    assert len(rows) == 1
    assert rows[0]["email"] == "sam@example.com"
