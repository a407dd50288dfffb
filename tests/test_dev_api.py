# tests/test_dev_api.py
from meatshare.config import get_settings


def test_dev_token_hidden_outside_dev_mode(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "0")
    get_settings.cache_clear()
    r = client.post("/dev/token", json={"user_id": "u1"})
    assert r.status_code == 404


def test_dev_token_is_accepted_by_the_api(client, monkeypatch):
    monkeypatch.setenv("DEV_MODE", "1")
    get_settings.cache_clear()
    r = client.post("/dev/token", json={"user_id": "u1", "email": "u1@example.com"})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]

    r = client.get("/api/roles/me/admin", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == {"role": "admin", "has_role": False}
