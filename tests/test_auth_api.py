from conftest import auth, make_admin, signup


class TestSignupAndLogin:
    def test_signup_returns_token(self, client):
        token, user = signup(client, "Alice")
        assert user["role"] == "student"
        assert user["status"] == "active"
        assert user["user_id"].startswith("USR_")

        me = client.get("/auth/me", headers=auth(token))
        assert me.status_code == 200
        assert me.json()["email"] == "alice@example.com"

    def test_duplicate_email_case_insensitive(self, client):
        signup(client, "Alice")
        resp = client.post("/auth/signup", json={
            "name": "Other", "email": "ALICE@example.com", "password": "password123"
        })
        assert resp.status_code == 409

    def test_admin_role_cannot_be_self_assigned(self, client):
        resp = client.post("/auth/signup", json={
            "name": "Mallory", "email": "m@example.com", "password": "password123", "role": "admin"
        })
        assert resp.status_code == 422

    def test_instructor_starts_pending(self, client):
        token, user = signup(client, "Ines", role="instructor")
        assert user["status"] == "pending"

        resp = client.post("/courses", json={
            "title": "Early course", "description": "d", "level": "Beginner",
            "category": "c", "language": "English",
        }, headers=auth(token))
        assert resp.status_code == 403

    def test_login(self, client):
        signup(client, "Alice")
        ok = client.post("/auth/login", json={"email": "Alice@Example.com", "password": "password123"})
        assert ok.status_code == 200
        assert ok.json()["token"]

        bad = client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-password"})
        assert bad.status_code == 401

    def test_suspended_user_locked_out(self, client, api_db):
        admin_token, _ = make_admin(api_db)
        token, user = signup(client, "Alice")

        resp = client.put(f"/admin/users/{user['user_id']}/status", json={"status": "suspended"}, headers=auth(admin_token))
        assert resp.status_code == 200

        assert client.get("/auth/me", headers=auth(token)).status_code == 403
        login = client.post("/auth/login", json={"email": "alice@example.com", "password": "password123"})
        assert login.status_code == 403


class TestTokens:
    def test_missing_header(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_garbage_token(self, client):
        assert client.get("/auth/me", headers=auth("not-a-jwt")).status_code == 401


class TestProfile:
    def test_update_profile(self, client):
        token, _ = signup(client, "Alice")
        resp = client.put("/auth/profile", json={"bio": "Learning Python"}, headers=auth(token))
        assert resp.status_code == 200
        assert client.get("/auth/me", headers=auth(token)).json()["bio"] == "Learning Python"

    def test_empty_update_rejected(self, client):
        token, _ = signup(client, "Alice")
        assert client.put("/auth/profile", json={}, headers=auth(token)).status_code == 400

    def test_change_password(self, client):
        token, _ = signup(client, "Alice")
        wrong = client.put("/auth/password", json={
            "current_password": "nope-nope", "new_password": "newpassword1"
        }, headers=auth(token))
        assert wrong.status_code == 400

        resp = client.put("/auth/password", json={
            "current_password": "password123", "new_password": "newpassword1"
        }, headers=auth(token))
        assert resp.status_code == 200

        login = client.post("/auth/login", json={"email": "alice@example.com", "password": "newpassword1"})
        assert login.status_code == 200


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] is True
