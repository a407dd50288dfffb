# tests/test_roles.py
def test_farmer_role_request_approval_flow(client, auth, seed):
    """request -> admin approves -> farmer role granted"""
    seed.role("admin-1", "admin")

    r = client.post(
        "/api/farmer-role-requests",
        json={"note": "  We raise grass-fed Angus.  "},
        headers=auth("user-1"),
    )
    assert r.status_code == 200, r.text
    request_id = r.json()["id"]
    assert r.json()["status"] == "pending"
    assert r.json()["note"] == "We raise grass-fed Angus."

    # asking again returns the same pending request
    r = client.post("/api/farmer-role-requests", json={}, headers=auth("user-1"))
    assert r.json()["id"] == request_id

    r = client.get("/api/roles/me/farmer", headers=auth("user-1"))
    assert r.json() == {"role": "farmer", "has_role": False}

    r = client.post(
        f"/api/admin/farmer-role-requests/{request_id}/review",
        json={"decision": "approved", "admin_note": "welcome"},
        headers=auth("admin-1"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "approved"

    r = client.get("/api/roles/me/farmer", headers=auth("user-1"))
    assert r.json()["has_role"] is True

    r = client.get("/api/profile/me", headers=auth("user-1"))
    assert r.json()["is_farmer"] is True

    r = client.get("/api/farmer-role-requests/me", headers=auth("user-1"))
    assert r.json()["request"]["status"] == "approved"

    # reviewed requests are final
    r = client.post(
        f"/api/admin/farmer-role-requests/{request_id}/review",
        json={"decision": "rejected"},
        headers=auth("admin-1"),
    )
    assert r.status_code == 409

    # a farmer cannot ask again
    r = client.post("/api/farmer-role-requests", json={}, headers=auth("user-1"))
    assert r.status_code == 409


def test_rejection_does_not_grant_role(client, auth, seed):
    seed.role("admin-1", "admin")
    request_id = client.post(
        "/api/farmer-role-requests", json={}, headers=auth("user-1")
    ).json()["id"]

    r = client.post(
        f"/api/admin/farmer-role-requests/{request_id}/review",
        json={"decision": "rejected", "admin_note": "please add farm details"},
        headers=auth("admin-1"),
    )
    assert r.status_code == 200
    assert r.json()["admin_note"] == "please add farm details"
    assert client.get("/api/roles/me/farmer", headers=auth("user-1")).json()["has_role"] is False


def test_note_too_long(client, auth):
    r = client.post(
        "/api/farmer-role-requests", json={"note": "x" * 501}, headers=auth("user-1")
    )
    assert r.status_code == 422


def test_admin_endpoints_require_admin(client, auth):
    r = client.get("/api/admin/farmer-role-requests", headers=auth("user-1"))
    assert r.status_code == 403

    r = client.post(
        "/api/admin/farmer-role-requests/whatever/review",
        json={"decision": "approved"},
        headers=auth("user-1"),
    )
    assert r.status_code == 403


def test_admin_lists_requests(client, auth, seed):
    seed.role("admin-1", "admin")
    client.post("/api/farmer-role-requests", json={}, headers=auth("user-1"))
    client.post("/api/farmer-role-requests", json={}, headers=auth("user-2"))

    r = client.get("/api/admin/farmer-role-requests", headers=auth("admin-1"))
    assert r.status_code == 200
    assert {row["user_id"] for row in r.json()["requests"]} == {"user-1", "user-2"}


def test_profile_update(client, auth):
    r = client.put(
        "/api/profile/me",
        json={"full_name": "Pat Rivers", "zip_code": "97701"},
        headers=auth("user-1", "pat@example.com"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["full_name"] == "Pat Rivers"
    assert r.json()["email"] == "pat@example.com"


def test_memberships_me_starts_empty(client, auth):
    r = client.get("/api/memberships/me", headers=auth("user-1"))
    assert r.status_code == 200
    assert r.json() == {"memberships": []}
