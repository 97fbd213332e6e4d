"""
Tests for the account-scope routes: inboxes, teams, agents, roles, API keys,
custom fields and jobs.
"""

import secrets
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from conftest import bearer
from inboxdesk.models import api_key as api_key_model
from inboxdesk.models.agent import Agent
from inboxdesk.models.inbox import Inbox
from inboxdesk.models.job import Job
from inboxdesk.models.plan import Subscription
from inboxdesk.services.whatsapp_service import WhatsAppGateway
from utils.mock_utils import create_test_agent, create_test_inbox, create_test_plan, create_test_team
from utils.mocks import failing_transport, gateway_transport


# ══════════════════════════════════════════════════════════════════════════════
# Inboxes
# ══════════════════════════════════════════════════════════════════════════════


class TestInboxes:
    async def test_create_and_fetch(self, client, owner_headers):
        response = await client.post(
            "/api/account/inboxes", json={"name": "Support", "phoneNumber": "+15550100"}, headers=owner_headers
        )
        assert response.status_code == 201
        inbox = response.json()["data"]
        assert inbox["name"] == "Support"
        assert inbox["channelType"] == "whatsapp"
        assert "gatewayToken" not in inbox

        fetched = await client.get(f"/api/account/inboxes/{inbox['id']}", headers=owner_headers)
        assert fetched.json()["data"]["phoneNumber"] == "+15550100"

    async def test_duplicate_name_conflicts(self, client, owner_headers, test_db, account):
        await create_test_inbox(test_db, account, "Support")
        response = await client.post("/api/account/inboxes", json={"name": "support"}, headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_RESOURCE"

    async def test_same_name_in_other_account_is_fine(self, client, owner_headers, test_db, other_account):
        await create_test_inbox(test_db, other_account, "Support")
        response = await client.post("/api/account/inboxes", json={"name": "Support"}, headers=owner_headers)
        assert response.status_code == 201

    async def test_missing_name_is_validation_error(self, client, owner_headers):
        response = await client.post("/api/account/inboxes", json={}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    async def test_quota_exceeded(self, client, owner_headers, test_db, tenant, account):
        tight = await create_test_plan(test_db, tenant, "Tiny", quotas={"max_inboxes": 1})
        subscription = await test_db.scalar(select(Subscription).where(Subscription.account_id == account.id))
        subscription.plan_id = tight.id
        await test_db.commit()
        await create_test_inbox(test_db, account, "Only one")

        response = await client.post("/api/account/inboxes", json={"name": "Second"}, headers=owner_headers)
        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "QUOTA_EXCEEDED"
        assert body["details"] == {"quota": "max_inboxes", "limit": 1, "current": 1}

    async def test_update_and_delete(self, client, owner_headers, test_db, account):
        inbox = await create_test_inbox(test_db, account, "Support")
        updated = await client.put(
            f"/api/account/inboxes/{inbox.id}", json={"name": "Helpdesk", "status": "inactive"}, headers=owner_headers
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["name"] == "Helpdesk"
        assert updated.json()["data"]["status"] == "inactive"

        deleted = await client.delete(f"/api/account/inboxes/{inbox.id}", headers=owner_headers)
        assert deleted.status_code == 200
        assert deleted.json()["data"] == {"id": inbox.id}
        missing = await client.get(f"/api/account/inboxes/{inbox.id}", headers=owner_headers)
        assert missing.status_code == 404

    async def test_explicit_null_clears_optional_fields(self, client, owner_headers, test_db, account):
        inbox = await create_test_inbox(test_db, account, "Support", gateway_token="gw-secret")
        await client.put(f"/api/account/inboxes/{inbox.id}", json={"phoneNumber": "+15550100"}, headers=owner_headers)

        response = await client.put(
            f"/api/account/inboxes/{inbox.id}", json={"phoneNumber": None, "gatewayToken": None}, headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["phoneNumber"] is None
        assert data["name"] == "Support"
        assert await test_db.scalar(select(Inbox.gateway_token).where(Inbox.id == inbox.id)) is None

    async def test_omitted_fields_are_untouched(self, client, owner_headers, test_db, account):
        inbox = await create_test_inbox(test_db, account, "Support", gateway_token="gw-secret")
        response = await client.put(f"/api/account/inboxes/{inbox.id}", json={"name": "Helpdesk"}, headers=owner_headers)
        assert response.status_code == 200
        assert await test_db.scalar(select(Inbox.gateway_token).where(Inbox.id == inbox.id)) == "gw-secret"

    async def test_null_name_is_validation_error(self, client, owner_headers, test_db, account):
        inbox = await create_test_inbox(test_db, account, "Support")
        response = await client.put(f"/api/account/inboxes/{inbox.id}", json={"name": None}, headers=owner_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_FAILED"
        assert body["details"]["field"] == "name"

    async def test_blank_name_is_validation_error(self, client, owner_headers):
        response = await client.post("/api/account/inboxes", json={"name": "   "}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    async def test_plain_agent_cannot_list(self, client, agent_headers):
        response = await client.get("/api/account/inboxes", headers=agent_headers)
        assert response.status_code == 403
        assert response.json()["details"]["required_permission"] == "inboxes:view"

    async def test_members(self, client, owner_headers, test_db, account, agent, other_owner):
        inbox = await create_test_inbox(test_db, account)
        added = await client.post(
            f"/api/account/inboxes/{inbox.id}/members", json={"agentId": agent.id}, headers=owner_headers
        )
        assert added.status_code == 201
        assert added.json()["data"]["agentId"] == agent.id

        again = await client.post(
            f"/api/account/inboxes/{inbox.id}/members", json={"agentId": agent.id}, headers=owner_headers
        )
        assert again.status_code == 409

        foreign = await client.post(
            f"/api/account/inboxes/{inbox.id}/members", json={"agentId": other_owner.id}, headers=owner_headers
        )
        assert foreign.status_code == 404
        assert foreign.json()["code"] == "AGENT_NOT_FOUND"

        listed = await client.get(f"/api/account/inboxes/{inbox.id}/members", headers=owner_headers)
        assert [m["agentId"] for m in listed.json()["data"]] == [agent.id]

        removed = await client.delete(f"/api/account/inboxes/{inbox.id}/members/{agent.id}", headers=owner_headers)
        assert removed.status_code == 200


class TestInboxStatus:
    async def test_without_gateway_token(self, client, owner_headers, test_db, account):
        inbox = await create_test_inbox(test_db, account)
        response = await client.get(f"/api/account/inboxes/{inbox.id}/status", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {
            "inboxId": inbox.id,
            "connected": False,
            "loggedIn": False,
            "status": "not_configured",
        }

    async def test_connected_session(self, app, client, owner_headers, test_db, account):
        seen = []
        app.state.services.whatsapp = WhatsAppGateway(
            "http://gateway.test",
            transport=gateway_transport({"data": {"Connected": True, "LoggedIn": True}}, seen=seen),
        )
        inbox = await create_test_inbox(test_db, account, gateway_token="wa-token")

        response = await client.get(f"/api/account/inboxes/{inbox.id}/status", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "connected"
        assert seen[0].headers["token"] == "wa-token"
        assert seen[0].url.path == "/session/status"

    async def test_gateway_down(self, app, client, owner_headers, test_db, account):
        app.state.services.whatsapp = WhatsAppGateway("http://gateway.test", transport=failing_transport())
        inbox = await create_test_inbox(test_db, account, gateway_token="wa-token")

        response = await client.get(f"/api/account/inboxes/{inbox.id}/status", headers=owner_headers)
        assert response.status_code == 502
        assert response.json()["code"] == "GATEWAY_ERROR"


# ══════════════════════════════════════════════════════════════════════════════
# Teams
# ══════════════════════════════════════════════════════════════════════════════


class TestTeams:
    async def test_create_and_members(self, client, owner_headers, agent):
        created = await client.post("/api/account/teams", json={"name": "Tier 1"}, headers=owner_headers)
        assert created.status_code == 201
        team = created.json()["data"]
        assert team["memberCount"] == 0

        member = await client.post(
            f"/api/account/teams/{team['id']}/members", json={"agentId": agent.id, "role": "lead"}, headers=owner_headers
        )
        assert member.status_code == 201
        assert member.json()["data"]["role"] == "lead"

        fetched = await client.get(f"/api/account/teams/{team['id']}", headers=owner_headers)
        assert fetched.json()["data"]["memberCount"] == 1

    async def test_invalid_member_role(self, client, owner_headers, test_db, account, agent):
        team = await create_test_team(test_db, account)
        response = await client.post(
            f"/api/account/teams/{team.id}/members", json={"agentId": agent.id, "role": "captain"}, headers=owner_headers
        )
        assert response.status_code == 400

    async def test_duplicate_name(self, client, owner_headers, test_db, account):
        await create_test_team(test_db, account, "Tier 1")
        response = await client.post("/api/account/teams", json={"name": "TIER 1"}, headers=owner_headers)
        assert response.status_code == 409

    async def test_description_can_be_cleared(self, client, owner_headers):
        created = await client.post(
            "/api/account/teams", json={"name": "Tier 1", "description": "First line"}, headers=owner_headers
        )
        team_id = created.json()["data"]["id"]

        response = await client.put(f"/api/account/teams/{team_id}", json={"description": None}, headers=owner_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["description"] is None
        assert data["name"] == "Tier 1"

    async def test_blank_name_is_validation_error(self, client, owner_headers, test_db, account):
        team = await create_test_team(test_db, account)
        response = await client.put(f"/api/account/teams/{team.id}", json={"name": "  "}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_FAILED"

    async def test_foreign_team_is_404(self, client, owner_headers, test_db, other_account):
        team = await create_test_team(test_db, other_account)
        response = await client.delete(f"/api/account/teams/{team.id}", headers=owner_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "TEAM_NOT_FOUND"


# ══════════════════════════════════════════════════════════════════════════════
# Agents
# ══════════════════════════════════════════════════════════════════════════════


class TestAgents:
    async def test_create_agent(self, client, owner_headers):
        response = await client.post(
            "/api/account/agents",
            json={"name": "New Agent", "email": "New.Agent@example.com", "password": "long-enough-pw"},
            headers=owner_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "new.agent@example.com"
        assert data["role"] == "agent"
        assert "passwordHash" not in data

    async def test_duplicate_email(self, client, owner_headers, agent):
        response = await client.post(
            "/api/account/agents",
            json={"name": "Copy", "email": agent.email, "password": "long-enough-pw"},
            headers=owner_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "An agent with this email already exists"

    async def test_owner_role_cannot_be_granted(self, client, owner_headers):
        response = await client.post(
            "/api/account/agents",
            json={"name": "Boss", "email": "boss@example.com", "password": "long-enough-pw", "role": "owner"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    async def test_cannot_deactivate_self(self, client, owner, owner_headers):
        response = await client.delete(f"/api/account/agents/{owner.id}", headers=owner_headers)
        assert response.status_code == 400

    async def test_owner_cannot_be_deactivated(self, client, test_db, account, owner):
        admin_agent = await create_test_agent(test_db, account, role="administrator")
        response = await client.delete(f"/api/account/agents/{owner.id}", headers=bearer(admin_agent))
        assert response.status_code == 403

    async def test_deactivate_then_activate(self, client, owner_headers, agent, test_db):
        deactivated = await client.delete(f"/api/account/agents/{agent.id}", headers=owner_headers)
        assert deactivated.status_code == 200
        assert deactivated.json()["data"]["status"] == "inactive"
        assert await test_db.scalar(select(Agent.id).where(Agent.id == agent.id)) == agent.id

        again = await client.delete(f"/api/account/agents/{agent.id}", headers=owner_headers)
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_IN_STATE"

        activated = await client.post(f"/api/account/agents/{agent.id}/activate", headers=owner_headers)
        assert activated.json()["data"]["status"] == "active"

    async def test_inactive_agent_cannot_authenticate(self, client, owner_headers, agent):
        await client.delete(f"/api/account/agents/{agent.id}", headers=owner_headers)
        response = await client.get("/api/auth/me", headers=bearer(agent))
        assert response.status_code == 401

    async def test_change_role(self, client, owner_headers, agent):
        response = await client.put(
            f"/api/account/agents/{agent.id}/role", json={"role": "viewer"}, headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["role"] == "viewer"

    async def test_search(self, client, owner_headers, test_db, account):
        await create_test_agent(test_db, account, email="zelda@example.com")
        response = await client.get("/api/account/agents?search=zelda", headers=owner_headers)
        assert [a["email"] for a in response.json()["data"]] == ["zelda@example.com"]


# ══════════════════════════════════════════════════════════════════════════════
# Roles
# ══════════════════════════════════════════════════════════════════════════════


class TestRoles:
    async def test_catalogue(self, client, owner_headers):
        response = await client.get("/api/account/roles", headers=owner_headers)
        data = response.json()["data"]
        assert {r["name"] for r in data["defaultRoles"]} == {"owner", "administrator", "agent", "viewer"}
        assert data["customRoles"] == []
        assert "api_keys:manage" in data["availablePermissions"]

    async def test_custom_role_lifecycle(self, client, owner_headers, agent):
        created = await client.post(
            "/api/account/roles",
            json={"name": "Supervisor", "permissions": ["reports:view", "agents:view", "reports:view"]},
            headers=owner_headers,
        )
        assert created.status_code == 201
        role = created.json()["data"]
        assert role["permissions"] == ["reports:view", "agents:view"]

        assigned = await client.put(
            f"/api/account/agents/{agent.id}/role", json={"customRoleId": role["id"]}, headers=owner_headers
        )
        assert assigned.json()["data"]["role"] == "custom"

        in_use = await client.delete(f"/api/account/roles/{role['id']}", headers=owner_headers)
        assert in_use.status_code == 409
        assert in_use.json()["code"] == "HAS_DEPENDENTS"

        # the custom role now grants agents:view
        listed = await client.get("/api/account/agents", headers=bearer(agent))
        assert listed.status_code == 200

    async def test_invalid_permission(self, client, owner_headers):
        response = await client.post(
            "/api/account/roles", json={"name": "Broken", "permissions": ["billing:steal"]}, headers=owner_headers
        )
        assert response.status_code == 400
        assert response.json()["details"]["invalid"] == ["billing:steal"]

    async def test_default_role_name_is_taken(self, client, owner_headers):
        response = await client.post(
            "/api/account/roles", json={"name": "Viewer", "permissions": ["reports:view"]}, headers=owner_headers
        )
        assert response.status_code == 409


# ══════════════════════════════════════════════════════════════════════════════
# API keys
# ══════════════════════════════════════════════════════════════════════════════


class TestApiKeys:
    async def test_full_key_shown_once(self, client, owner_headers):
        created = await client.post("/api/account/api-keys", json={"name": "CRM sync"}, headers=owner_headers)
        assert created.status_code == 201
        body = created.json()
        full_key = body["data"]["key"]
        assert full_key.startswith(body["data"]["keyPrefix"] + "_")
        assert body["message"] == "Store this key now, it will not be shown again"

        listed = await client.get("/api/account/api-keys", headers=owner_headers)
        assert len(listed.json()["data"]) == 1
        assert "key" not in listed.json()["data"][0]

    async def test_key_authenticates_until_revoked(self, client, owner_headers):
        created = await client.post("/api/account/api-keys", json={"name": "CRM sync"}, headers=owner_headers)
        key_id, full_key = created.json()["data"]["id"], created.json()["data"]["key"]
        key_headers = {"Authorization": f"Bearer {full_key}"}

        assert (await client.get("/api/account/inboxes", headers=key_headers)).status_code == 200

        revoked = await client.delete(f"/api/account/api-keys/{key_id}", headers=owner_headers)
        assert revoked.json()["data"]["revokedAt"] is not None
        assert (await client.get("/api/account/inboxes", headers=key_headers)).status_code == 401

    async def test_scoped_key(self, client, owner_headers):
        created = await client.post(
            "/api/account/api-keys", json={"name": "Read only", "scopes": ["contacts:view"]}, headers=owner_headers
        )
        key_headers = {"Authorization": f"Bearer {created.json()['data']['key']}"}
        response = await client.get("/api/account/inboxes", headers=key_headers)
        assert response.status_code == 403

    async def test_prefix_has_twelve_hex_chars(self, client, owner_headers):
        created = await client.post("/api/account/api-keys", json={"name": "CRM sync"}, headers=owner_headers)
        prefix = created.json()["data"]["keyPrefix"]
        assert prefix.startswith("idk_")
        assert len(prefix) == len("idk_") + 12

    async def test_prefix_collision_regenerates(self, client, owner_headers, monkeypatch):
        prefixes = iter(["aaaaaaaaaaaa", "aaaaaaaaaaaa", "bbbbbbbbbbbb"])
        monkeypatch.setattr(
            api_key_model,
            "secrets",
            SimpleNamespace(token_hex=lambda nbytes: next(prefixes), token_urlsafe=secrets.token_urlsafe),
        )

        first = await client.post("/api/account/api-keys", json={"name": "CRM sync"}, headers=owner_headers)
        second = await client.post("/api/account/api-keys", json={"name": "Billing"}, headers=owner_headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["data"]["keyPrefix"] == "idk_aaaaaaaaaaaa"
        assert second.json()["data"]["keyPrefix"] == "idk_bbbbbbbbbbbb"

        second_headers = {"Authorization": f"Bearer {second.json()['data']['key']}"}
        assert (await client.get("/api/account/inboxes", headers=second_headers)).status_code == 200

    async def test_prefix_collisions_exhausted(self, client, owner_headers, monkeypatch):
        monkeypatch.setattr(
            api_key_model,
            "secrets",
            SimpleNamespace(token_hex=lambda nbytes: "cccccccccccc", token_urlsafe=secrets.token_urlsafe),
        )
        assert (await client.post("/api/account/api-keys", json={"name": "One"}, headers=owner_headers)).status_code == 201

        response = await client.post("/api/account/api-keys", json={"name": "Two"}, headers=owner_headers)
        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"

        listed = await client.get("/api/account/api-keys", headers=owner_headers)
        assert [key["name"] for key in listed.json()["data"]] == ["One"]

    async def test_wrong_secret(self, client, owner_headers):
        created = await client.post("/api/account/api-keys", json={"name": "CRM sync"}, headers=owner_headers)
        prefix = created.json()["data"]["keyPrefix"]
        response = await client.get("/api/account/inboxes", headers={"Authorization": f"Bearer {prefix}_guessed"})
        assert response.status_code == 401


# ══════════════════════════════════════════════════════════════════════════════
# Custom fields
# ══════════════════════════════════════════════════════════════════════════════


class TestCustomFields:
    async def test_display_order_appends(self, client, owner_headers):
        first = await client.post(
            "/api/account/custom-fields",
            json={"name": "company", "label": "Company", "fieldType": "text"},
            headers=owner_headers,
        )
        second = await client.post(
            "/api/account/custom-fields",
            json={"name": "tier", "label": "Tier", "fieldType": "dropdown", "options": ["gold", "silver"]},
            headers=owner_headers,
        )
        assert first.json()["data"]["displayOrder"] == 1
        assert second.json()["data"]["displayOrder"] == 2
        assert second.json()["data"]["options"] == ["gold", "silver"]

    @pytest.mark.parametrize("name", ["Company", "1st", "has space", "dash-ed"])
    async def test_invalid_name(self, client, owner_headers, name):
        response = await client.post(
            "/api/account/custom-fields", json={"name": name, "label": "X", "fieldType": "text"}, headers=owner_headers
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "name"

    async def test_dropdown_needs_options(self, client, owner_headers):
        response = await client.post(
            "/api/account/custom-fields",
            json={"name": "tier", "label": "Tier", "fieldType": "dropdown"},
            headers=owner_headers,
        )
        assert response.status_code == 400

    async def test_update_label(self, client, owner_headers):
        created = await client.post(
            "/api/account/custom-fields",
            json={"name": "company", "label": "Company", "fieldType": "text"},
            headers=owner_headers,
        )
        field_id = created.json()["data"]["id"]
        updated = await client.put(
            f"/api/account/custom-fields/{field_id}", json={"label": "Organisation"}, headers=owner_headers
        )
        assert updated.json()["data"]["label"] == "Organisation"
        assert updated.json()["data"]["name"] == "company"

    async def test_default_value_can_be_cleared(self, client, owner_headers):
        created = await client.post(
            "/api/account/custom-fields",
            json={"name": "tier", "label": "Tier", "fieldType": "dropdown", "options": ["gold"], "defaultValue": "gold"},
            headers=owner_headers,
        )
        field_id = created.json()["data"]["id"]

        cleared = await client.put(
            f"/api/account/custom-fields/{field_id}", json={"defaultValue": None}, headers=owner_headers
        )
        assert cleared.status_code == 200
        assert cleared.json()["data"]["defaultValue"] is None
        assert cleared.json()["data"]["options"] == ["gold"]

        no_options = await client.put(
            f"/api/account/custom-fields/{field_id}", json={"options": None}, headers=owner_headers
        )
        assert no_options.status_code == 400
        assert no_options.json()["details"]["field"] == "options"


# ══════════════════════════════════════════════════════════════════════════════
# Account, subscription and jobs
# ══════════════════════════════════════════════════════════════════════════════


class TestAccountOverview:
    async def test_own_account(self, client, agent_headers, account):
        response = await client.get("/api/account/account", headers=agent_headers)
        assert response.json()["data"]["id"] == account.id

    async def test_subscription(self, client, agent_headers, plan):
        response = await client.get("/api/account/subscription", headers=agent_headers)
        data = response.json()["data"]
        assert data["planId"] == plan.id
        assert data["plan"]["quotas"]["max_inboxes"] == 10

    async def test_jobs(self, client, owner_headers, test_db, account, other_account):
        job = Job(account_id=account.id, job_type="report", status="completed", progress=100)
        foreign = Job(account_id=other_account.id, job_type="report")
        test_db.add_all([job, foreign])
        await test_db.commit()

        listed = await client.get("/api/account/jobs", headers=owner_headers)
        assert [j["id"] for j in listed.json()["data"]] == [job.id]

        fetched = await client.get(f"/api/account/jobs/{job.id}", headers=owner_headers)
        assert fetched.json()["data"]["progress"] == 100

        hidden = await client.get(f"/api/account/jobs/{foreign.id}", headers=owner_headers)
        assert hidden.status_code == 404
        assert hidden.json()["code"] == "JOB_NOT_FOUND"
