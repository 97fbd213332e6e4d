"""
Tenant-scoped resource guard tests

A row owned by another account (or tenant) must be indistinguishable from
a row that does not exist, for reads and for writes.
"""

import pytest
from sqlalchemy import select

from conftest import bearer
from inboxdesk.auth import CallerContext
from inboxdesk.constants import CallerKind
from inboxdesk.exceptions import ErrorCode, ResourceNotFoundError, TenantMismatchError
from inboxdesk.models.audit_log import AuditLogEntry
from inboxdesk.models.inbox import Inbox
from inboxdesk.models.plan import Plan
from inboxdesk.utils.ownership import ResourceGuard, parse_resource_id
from utils.mock_utils import create_test_account, create_test_inbox, create_test_plan


def _agent_caller(account_id: int, tenant_id: int) -> CallerContext:
    return CallerContext(caller_id=1, kind=CallerKind.AGENT, role="owner", account_id=account_id, tenant_id=tenant_id)


class TestParseResourceId:
    @pytest.mark.parametrize("raw,expected", [("12", 12), (12, 12), ("0", None), ("-3", None), ("abc", None), (None, None)])
    def test_parse(self, raw, expected):
        assert parse_resource_id(raw) == expected


class TestVerifyOwnership:
    guard = ResourceGuard(Inbox, resource_type="Inbox", not_found=ErrorCode.INBOX_NOT_FOUND, param="inbox_id")

    async def test_owned_row_returned(self, test_db, account, tenant):
        inbox = await create_test_inbox(test_db, account)
        row = await self.guard.verify_ownership(str(inbox.id), _agent_caller(account.id, tenant.id), test_db)
        assert row.id == inbox.id

    async def test_missing_row(self, test_db, account, tenant):
        with pytest.raises(ResourceNotFoundError) as exc_info:
            await self.guard.verify_ownership("4242", _agent_caller(account.id, tenant.id), test_db)
        assert exc_info.value.error_code == ErrorCode.INBOX_NOT_FOUND
        assert not isinstance(exc_info.value, TenantMismatchError)

    async def test_foreign_row(self, test_db, account, other_account, tenant):
        inbox = await create_test_inbox(test_db, other_account)
        with pytest.raises(TenantMismatchError) as exc_info:
            await self.guard.verify_ownership(inbox.id, _agent_caller(account.id, tenant.id), test_db)
        assert exc_info.value.error_code == ErrorCode.INBOX_NOT_FOUND
        assert exc_info.value.owner_id == other_account.id

    async def test_non_numeric_id(self, test_db, account, tenant):
        with pytest.raises(ResourceNotFoundError):
            await self.guard.verify_ownership("not-a-number", _agent_caller(account.id, tenant.id), test_db)

    async def test_foreign_access_logged(self, test_db, account, other_account, tenant, caplog):
        inbox = await create_test_inbox(test_db, other_account)
        with pytest.raises(TenantMismatchError):
            await self.guard.verify_ownership(inbox.id, _agent_caller(account.id, tenant.id), test_db)
        record = next(r for r in caplog.records if getattr(r, "type", None) == "security_violation")
        assert record.levelname == "WARNING"
        assert record.resource_id == inbox.id
        assert record.owner_id == other_account.id

    async def test_custom_loader_and_owner(self, test_db, account, tenant):
        inbox = await create_test_inbox(test_db, account)
        loaded = []

        async def loader(db, resource_id):
            loaded.append(resource_id)
            return await db.get(Inbox, resource_id)

        guard = ResourceGuard(
            Inbox, resource_type="Inbox", loader=loader, owner_of=lambda row: row.account_id, param="inbox_id"
        )
        await guard.verify_ownership(inbox.id, _agent_caller(account.id, tenant.id), test_db)
        assert loaded == [inbox.id]


class TestCrossAccountInboxRoutes:
    @pytest.fixture
    async def foreign_inbox(self, test_db, other_account):
        return await create_test_inbox(test_db, other_account, "Sales line")

    async def test_get_foreign_matches_missing(self, client, owner_headers, foreign_inbox):
        foreign = await client.get(f"/api/account/inboxes/{foreign_inbox.id}", headers=owner_headers)
        missing = await client.get("/api/account/inboxes/999999", headers=owner_headers)
        assert foreign.status_code == 404
        assert foreign.json() == missing.json()
        assert foreign.json()["code"] == "INBOX_NOT_FOUND"

    async def test_put_foreign_is_404_and_unchanged(self, client, owner_headers, foreign_inbox, test_db):
        response = await client.put(
            f"/api/account/inboxes/{foreign_inbox.id}", json={"name": "Hijacked"}, headers=owner_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "INBOX_NOT_FOUND"

        name = await test_db.scalar(select(Inbox.name).where(Inbox.id == foreign_inbox.id))
        assert name == "Sales line"

    async def test_delete_foreign_is_404_and_kept(self, client, owner_headers, foreign_inbox, test_db):
        response = await client.delete(f"/api/account/inboxes/{foreign_inbox.id}", headers=owner_headers)
        assert response.status_code == 404
        assert await test_db.scalar(select(Inbox.id).where(Inbox.id == foreign_inbox.id)) == foreign_inbox.id

    async def test_foreign_attempt_writes_no_audit_row(self, client, owner_headers, foreign_inbox, test_db):
        await client.delete(f"/api/account/inboxes/{foreign_inbox.id}", headers=owner_headers)
        rows = (await test_db.execute(select(AuditLogEntry))).scalars().all()
        assert rows == []

    async def test_non_numeric_id_is_404(self, client, owner_headers):
        response = await client.get("/api/account/inboxes/abc", headers=owner_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "INBOX_NOT_FOUND"

    async def test_owner_of_other_account_sees_it(self, client, other_owner, foreign_inbox):
        response = await client.get(f"/api/account/inboxes/{foreign_inbox.id}", headers=bearer(other_owner))
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Sales line"

    async def test_foreign_member_routes(self, client, owner_headers, foreign_inbox, owner):
        listed = await client.get(f"/api/account/inboxes/{foreign_inbox.id}/members", headers=owner_headers)
        added = await client.post(
            f"/api/account/inboxes/{foreign_inbox.id}/members", json={"agentId": owner.id}, headers=owner_headers
        )
        assert listed.status_code == 404
        assert added.status_code == 404


class TestCrossTenantPlanRoutes:
    async def test_foreign_plan_is_404(self, client, admin_headers, test_db, other_tenant):
        foreign_plan = await create_test_plan(test_db, other_tenant, "Globex Pro")
        response = await client.get(f"/api/admin/plans/{foreign_plan.id}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PLAN_NOT_FOUND"

    async def test_foreign_plan_update_leaves_it_alone(self, client, admin_headers, test_db, other_tenant):
        foreign_plan = await create_test_plan(test_db, other_tenant, "Globex Pro", price_cents=500)
        response = await client.put(
            f"/api/admin/plans/{foreign_plan.id}", json={"priceCents": 1}, headers=admin_headers
        )
        assert response.status_code == 404
        assert await test_db.scalar(select(Plan.price_cents).where(Plan.id == foreign_plan.id)) == 500

    async def test_foreign_account_is_404(self, client, admin_headers, test_db, other_tenant):
        foreign_account = await create_test_account(test_db, other_tenant, "Globex Support")
        response = await client.post(f"/api/admin/accounts/{foreign_account.id}/deactivate", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "ACCOUNT_NOT_FOUND"
