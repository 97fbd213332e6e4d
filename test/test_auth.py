"""
Identity resolution tests

Covers credential priority (bearer, session cookie, X-Admin-Token), the
401/403 outcomes and the caller/request tenant check.
"""

from datetime import timedelta

import pytest

from conftest import ADMIN_TOKEN, TEST_SETTINGS, admin_token_headers, bearer
from inboxdesk.auth import (
    create_access_token,
    decode_access_token,
    ensure_tenant_active,
    hash_api_secret,
    hash_password,
    verify_password,
)
from inboxdesk.exceptions import ErrorCode, InvalidTokenError, PermissionDeniedError
from inboxdesk.models.agent import AgentStatus
from inboxdesk.permissions_config.permissions import WILDCARD, has_permission
from utils.mock_utils import TEST_PASSWORD, create_test_agent


class TestPasswordAndTokenHelpers:
    def test_password_roundtrip(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_token_subject(self):
        token = create_access_token("agent:12", TEST_SETTINGS)
        assert decode_access_token(token, TEST_SETTINGS) == "agent:12"

    def test_expired_token_rejected(self):
        token = create_access_token("agent:12", TEST_SETTINGS, expires_delta=timedelta(minutes=-1))
        with pytest.raises(InvalidTokenError):
            decode_access_token(token, TEST_SETTINGS)

    def test_foreign_signature_rejected(self):
        forged = create_access_token("agent:12", TEST_SETTINGS.model_copy(update={"secret_key": "someone-else"}))
        with pytest.raises(InvalidTokenError):
            decode_access_token(forged, TEST_SETTINGS)

    def test_api_secret_hash_is_stable(self):
        assert hash_api_secret("abc") == hash_api_secret("abc")
        assert hash_api_secret("abc") != hash_api_secret("abd")

    def test_wildcard_grants_everything(self):
        assert has_permission([WILDCARD], "inboxes:manage")
        assert not has_permission(["inboxes:view"], "inboxes:manage")

    def test_inactive_tenant_is_refused(self):
        ensure_tenant_active(1, "active")
        ensure_tenant_active(None, None)
        with pytest.raises(PermissionDeniedError) as exc_info:
            ensure_tenant_active(1, "inactive")
        assert exc_info.value.error_code == ErrorCode.TENANT_INACTIVE
        assert exc_info.value.status_code == 403


class TestCredentialResolution:
    async def test_no_credentials_is_401(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_REQUIRED"

    async def test_bearer_agent(self, client, owner, account, tenant):
        response = await client.get("/api/auth/me", headers=bearer(owner))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["kind"] == "agent"
        assert data["accountId"] == account.id
        assert data["tenantId"] == tenant.id
        assert data["role"] == "owner"
        assert data["permissions"] == [WILDCARD]

    async def test_bearer_admin(self, client, tenant_admin, tenant):
        response = await client.get("/api/auth/me", headers=bearer(tenant_admin))
        data = response.json()["data"]
        assert data["kind"] == "admin"
        assert data["tenantId"] == tenant.id
        assert data["accountId"] is None

    async def test_garbage_bearer_is_401(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_INVALID_TOKEN"

    async def test_non_bearer_scheme_is_401(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401

    async def test_unknown_principal_is_401(self, client):
        token = create_access_token("agent:99999", TEST_SETTINGS)
        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_inactive_agent_is_401(self, client, test_db, account):
        inactive = await create_test_agent(test_db, account, status=AgentStatus.inactive)
        response = await client.get("/api/auth/me", headers=bearer(inactive))
        assert response.status_code == 401

    async def test_admin_token(self, client):
        response = await client.get("/api/auth/me", headers={"X-Admin-Token": ADMIN_TOKEN})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["kind"] == "service"
        assert data["role"] == "superadmin"

    async def test_wrong_admin_token_is_401(self, client):
        response = await client.get("/api/auth/me", headers={"X-Admin-Token": "guess"})
        assert response.status_code == 401

    async def test_bearer_wins_over_admin_token(self, client, agent):
        headers = {**bearer(agent), "X-Admin-Token": ADMIN_TOKEN}
        response = await client.get("/api/auth/me", headers=headers)
        assert response.json()["data"]["kind"] == "agent"

    async def test_admin_token_takes_request_tenant(self, client, tenant):
        response = await client.get("/api/auth/me", headers=admin_token_headers(tenant))
        assert response.json()["data"]["tenantId"] == tenant.id


class TestSessionLogin:
    async def test_agent_login_sets_session(self, client, owner):
        response = await client.post("/api/auth/agent/login", json={"email": owner.email, "password": TEST_PASSWORD})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tokenType"] == "bearer"
        assert data["accessToken"]

        # The session cookie alone now identifies the agent
        me = await client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["data"]["callerId"] == owner.id

    async def test_logout_clears_session(self, client, owner):
        await client.post("/api/auth/agent/login", json={"email": owner.email, "password": TEST_PASSWORD})
        await client.post("/api/auth/logout")
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    async def test_wrong_password(self, client, owner):
        response = await client.post("/api/auth/agent/login", json={"email": owner.email, "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_INVALID_CREDENTIALS"

    async def test_agent_login_scoped_to_request_tenant(self, client, owner, other_tenant):
        response = await client.post(
            "/api/auth/agent/login",
            json={"email": owner.email, "password": TEST_PASSWORD},
            headers={"X-Tenant-Slug": other_tenant.subdomain},
        )
        assert response.status_code == 401

    async def test_admin_login(self, client, tenant_admin):
        response = await client.post(
            "/api/auth/admin/login", json={"email": tenant_admin.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        me = await client.get("/api/auth/me")
        assert me.json()["data"]["kind"] == "admin"


class TestTenantMismatch:
    async def test_agent_on_foreign_tenant_is_403(self, client, owner, other_tenant):
        headers = {**bearer(owner), "X-Tenant-Slug": other_tenant.subdomain}
        response = await client.get("/api/auth/me", headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "TENANT_MISMATCH"

    async def test_agent_on_own_tenant(self, client, owner, tenant):
        headers = {**bearer(owner), "X-Tenant-Slug": tenant.subdomain}
        response = await client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200

    async def test_superadmin_may_enter_any_tenant(self, client, superadmin_headers, other_tenant):
        headers = {**superadmin_headers, "X-Tenant-Slug": other_tenant.subdomain}
        response = await client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200

    async def test_mismatch_is_logged_as_security_violation(self, client, owner, other_tenant, caplog):
        headers = {**bearer(owner), "X-Tenant-Slug": other_tenant.subdomain}
        await client.get("/api/auth/me", headers=headers)
        violations = [r for r in caplog.records if getattr(r, "type", None) == "security_violation"]
        assert violations
        assert violations[0].levelname == "WARNING"


class TestRoleGates:
    async def test_agent_cannot_use_admin_scope(self, client, owner_headers):
        response = await client.get("/api/admin/plans", headers=owner_headers)
        assert response.status_code == 403

    async def test_admin_cannot_use_account_scope(self, client, admin_headers):
        response = await client.get("/api/account/inboxes", headers=admin_headers)
        assert response.status_code == 403

    async def test_tenant_admin_cannot_use_superadmin_scope(self, client, admin_headers):
        response = await client.get("/api/superadmin/tenants", headers=admin_headers)
        assert response.status_code == 403

    async def test_superadmin_without_tenant_needs_context(self, client, superadmin_headers):
        response = await client.get("/api/admin/plans", headers=superadmin_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "TENANT_CONTEXT_REQUIRED"

    async def test_missing_permission_is_403(self, client, test_db, account):
        viewer = await create_test_agent(test_db, account, role="viewer")
        response = await client.post("/api/account/inboxes", json={"name": "X"}, headers=bearer(viewer))
        assert response.status_code == 403
        assert response.json()["details"]["required_permission"] == "inboxes:manage"
