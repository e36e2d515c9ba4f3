"""
Tests for user management.
"""
from busfleet.models.user import UserSession
from conftest import login, make_user


def test_search_users(client, admin_headers, worker, partner):
    body = client.get("/api/users", params={"search": "paula"}, headers=admin_headers).json()
    assert [u["id"] for u in body["data"]] == [partner.id]


def test_update_user_and_password(client, admin_headers, worker):
    response = client.patch(
        f"/api/users/{worker.id}",
        json={"full_name": "Walter W.", "password": "brand-new-pass"},
        headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["full_name"] == "Walter W."

    assert login(client, worker.national_id, "brand-new-pass")


def test_update_user_with_taken_national_id(client, admin_headers, worker, partner):
    response = client.patch(
        f"/api/users/{worker.id}", json={"national_id": partner.national_id}, headers=admin_headers
    )
    assert response.status_code == 409


def test_worker_cannot_update_users(client, worker_headers, partner):
    response = client.patch(f"/api/users/{partner.id}", json={"full_name": "X"}, headers=worker_headers)
    assert response.status_code == 403


def test_delete_user_closes_sessions(client, admin_headers, worker, worker_headers, db):
    response = client.delete(f"/api/users/{worker.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    db.expire_all()
    sessions = db.query(UserSession).filter(UserSession.user_id == worker.id).all()
    assert sessions and all(not s.is_active and s.ended_at is not None for s in sessions)

    assert client.get("/api/auth/me", headers=worker_headers).status_code == 401


def test_cannot_delete_self(client, admin_headers, admin):
    response = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
    assert response.status_code == 400


def test_activate_user(client, admin_headers, db):
    former = make_user(db, "Fiona Former", "4000", "former-pass-123", is_active=False)

    response = client.post(f"/api/users/{former.id}/activate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is True

    again = client.post(f"/api/users/{former.id}/activate", headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "User is already active"
