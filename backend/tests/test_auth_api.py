"""Tests for the /auth endpoints."""

import uuid

import pytest

from campadmin.api.auth import get_auth_service
from campadmin.models.admin_user import AdminRole, AdminUser
from campadmin.services.auth import AuthService, hash_password, to_identity

from test_revocation import BrokenAddSet, SlowAddSet

PASSWORD = "correct-horse-battery"


class StubAuthService(AuthService):
    """AuthService whose user lookup is served from memory."""

    def __init__(self, session, users: list[AdminUser]):
        super().__init__(session)
        self.users = {u.username: u for u in users}

    async def get_user_by_username(self, username: str) -> AdminUser | None:
        return self.users.get(username)


@pytest.fixture
def login_user(directory):
    user = AdminUser(
        id=uuid.uuid4(),
        username="storeowner",
        password_hash=hash_password(PASSWORD),
        display_name="Store Owner",
        role=AdminRole.SUPER_ADMIN.value,
    )
    directory.add(to_identity(user))
    return user


@pytest.fixture
def stub_login(app, mock_db_session, login_user):
    app.dependency_overrides[get_auth_service] = lambda: StubAuthService(mock_db_session, [login_user])
    return login_user


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, client, stub_login, codec):
        response = await client.post("/auth/login", json={"username": "storeowner", "password": PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == codec.lifetime_seconds
        assert data["admin"] == {"id": str(stub_login.id), "username": "storeowner", "role": "super-admin"}
        assert codec.verify(data["access_token"]).id == str(stub_login.id)
        assert stub_login.last_login_at is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, stub_login):
        response = await client.post("/auth/login", json={"username": "storeowner", "password": "wrong-password"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_unknown_user_same_error(self, client, stub_login):
        response = await client.post("/auth/login", json={"username": "ghostuser", "password": PASSWORD})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "username,password",
        [("owner", PASSWORD), ("storeowner", "short12")],
    )
    async def test_short_credentials_rejected(self, client, stub_login, username, password):
        response = await client.post("/auth/login", json={"username": username, "password": password})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_login_is_rate_limited(self, client, stub_login):
        from campadmin.core import settings

        limit = settings.rate_limit_login_requests_per_window
        statuses = [
            (await client.post("/auth/login", json={"username": "storeowner", "password": "wrong-password"})).status_code
            for _ in range(limit + 1)
        ]

        assert statuses == [401] * limit + [429]


class TestVerifyAndLogout:
    @pytest.mark.asyncio
    async def test_verify(self, client, codec, make_identity):
        identity = make_identity(AdminRole.EDITOR)
        headers = {"Authorization": f"Bearer {codec.issue(identity)}"}

        response = await client.get("/auth/verify", headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "valid": True,
            "admin": {"id": identity.id, "username": identity.username, "role": "editor"},
        }

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/auth/verify")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"] == "Invalid or missing credentials"

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client, auth_headers):
        headers = auth_headers("admin")

        response = await client.post("/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}

        assert (await client.get("/auth/verify", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_twice_succeeds(self, client, auth_headers):
        headers = auth_headers("admin")

        first = await client.post("/auth/logout", headers=headers)
        second = await client.post("/auth/logout", headers=headers)

        assert (first.status_code, second.status_code) == (200, 200)
        assert second.json() == {"message": "Logged out successfully"}
        assert (await client.get("/auth/verify", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_token(self, client):
        response = await client.post("/auth/logout")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_logout_with_expired_token(self, client, auth_headers, clock, codec):
        headers = auth_headers()
        clock.advance(codec.lifetime_seconds)

        assert (await client.post("/auth/logout", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "backend,status_code",
        [(BrokenAddSet(), 503), (SlowAddSet(delay=0.5), 504)],
    )
    async def test_logout_when_store_cannot_write(
        self, client, auth_gate, auth_headers, monkeypatch, backend, status_code
    ):
        headers = auth_headers()
        monkeypatch.setattr(auth_gate.revocations, "backend", backend)
        monkeypatch.setattr(auth_gate.revocations, "lookup_timeout", 0.05)

        response = await client.post("/auth/logout", headers=headers)

        assert response.status_code == status_code

    @pytest.mark.asyncio
    async def test_logout_leaves_other_sessions(self, client, codec, make_identity):
        identity = make_identity()
        first = {"Authorization": f"Bearer {codec.issue(identity)}"}
        second = {"Authorization": f"Bearer {codec.issue(identity)}"}

        await client.post("/auth/logout", headers=first)

        assert (await client.get("/auth/verify", headers=second)).status_code == 200

    @pytest.mark.asyncio
    async def test_expired_token(self, client, auth_headers, clock, codec):
        headers = auth_headers()
        clock.advance(codec.lifetime_seconds)

        response = await client.get("/auth/verify", headers=headers)

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_deleted_admin(self, client, codec, directory, make_identity):
        identity = make_identity()
        headers = {"Authorization": f"Bearer {codec.issue(identity)}"}
        directory.remove(identity.id)

        response = await client.get("/auth/verify", headers=headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Admin not found"

    @pytest.mark.asyncio
    async def test_directory_timeout(self, client, auth_gate, auth_headers, directory):
        headers = auth_headers()
        auth_gate.lookup_timeout = 0.05
        directory.delay = 0.5

        response = await client.get("/auth/verify", headers=headers)

        assert response.status_code == 504


class TestDatabaseLogin:
    @pytest.mark.asyncio
    async def test_login_me_logout(self, db_client, super_admin):
        response = await db_client.post(
            "/auth/login", json={"username": "testadmin", "password": "testpassword123"}
        )
        assert response.status_code == 200
        headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

        me = await db_client.get("/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["username"] == "testadmin"
        assert me.json()["display_name"] == "Test Admin"
        assert me.json()["last_login_at"] is not None
        assert "password_hash" not in me.json()

        assert (await db_client.post("/auth/logout", headers=headers)).status_code == 200
        assert (await db_client.get("/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_client, super_admin):
        response = await db_client.post(
            "/auth/login", json={"username": "testadmin", "password": "wrong-password"}
        )

        assert response.status_code == 401
