"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Integration tests for the guild, role and channel routes using the
FastAPI TestClient against the in-memory engine.

These tests verify:
- Auth guards (bearer JWT, ``sub`` is the acting user)
- Domain errors map to 404 / 403 / 409 / 422
- Health endpoint availability
"""

from __future__ import annotations

import pytest
from conftest import OWNER_ID, make_role, make_token

from chord.engine.permissions import Permission


def _auth(sub: str = OWNER_ID) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAuthGuards:
    ENDPOINTS = [
        "/api/guilds/g/roles",
        "/api/guilds/g/channels",
        "/api/guilds/g/members",
        "/api/guilds/g/audit",
    ]

    @pytest.mark.parametrize("endpoint", ENDPOINTS)
    def test_rejects_no_auth(self, client, endpoint):
        resp = client.get(endpoint)
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", ENDPOINTS)
    def test_rejects_invalid_token(self, client, endpoint):
        resp = client.get(endpoint, headers={"Authorization": "Bearer invalid"})
        assert resp.status_code == 401


# ===========================================================================
# Guilds
# ===========================================================================
class TestGuildRoutes:
    def test_create_guild(self, client):
        resp = client.post("/api/guilds", json={"name": "Web Guild"}, headers=_auth())
        assert resp.status_code == 201
        body = resp.json()
        assert body["owner_id"] == OWNER_ID

        roles = client.get(f"/api/guilds/{body['id']}/roles", headers=_auth()).json()["roles"]
        assert [r["name"] for r in roles] == ["owner", "general"]

    def test_join_and_leave(self, client, guild):
        resp = client.post(f"/api/guilds/{guild['id']}/join", headers=_auth("dave"))
        assert resp.json() == {"joined": True}
        members = client.get(f"/api/guilds/{guild['id']}/members", headers=_auth("dave")).json()
        assert "dave" in members["members"]
        resp = client.post(f"/api/guilds/{guild['id']}/leave", headers=_auth("dave"))
        assert resp.json() == {"left": True}

    def test_owner_cannot_leave(self, client, guild):
        resp = client.post(f"/api/guilds/{guild['id']}/leave", headers=_auth())
        assert resp.status_code == 409

    def test_delete_guild_is_owner_only(self, client, guild):
        resp = client.delete(f"/api/guilds/{guild['id']}", headers=_auth("alice"))
        assert resp.status_code == 403
        resp = client.delete(f"/api/guilds/{guild['id']}", headers=_auth())
        assert resp.status_code == 204

    def test_members_requires_membership(self, client, guild):
        resp = client.get(f"/api/guilds/{guild['id']}/members", headers=_auth("stranger"))
        assert resp.status_code == 403

    def test_missing_guild(self, client):
        resp = client.get("/api/guilds/nope/members", headers=_auth())
        assert resp.status_code == 404


# ===========================================================================
# Roles
# ===========================================================================
class TestRoleRoutes:
    def test_create_role(self, client, guild):
        resp = client.post(
            f"/api/guilds/{guild['id']}/roles",
            json={"name": "Mods", "color": "#336699", "permissions": int(Permission.KICK_MEMBERS)},
            headers=_auth(),
        )
        assert resp.status_code == 201
        assert resp.json()["position"] == 1

    def test_create_role_forbidden(self, client, guild):
        resp = client.post(
            f"/api/guilds/{guild['id']}/roles", json={"name": "Mine"}, headers=_auth("alice")
        )
        assert resp.status_code == 403
        assert "permission" in resp.json()["detail"]

    def test_duplicate_role_conflicts(self, client, guild):
        client.post(f"/api/guilds/{guild['id']}/roles", json={"name": "Mods"}, headers=_auth())
        resp = client.post(f"/api/guilds/{guild['id']}/roles", json={"name": "Mods"}, headers=_auth())
        assert resp.status_code == 409

    def test_empty_name_is_unprocessable(self, client, guild):
        resp = client.post(f"/api/guilds/{guild['id']}/roles", json={"name": "  "}, headers=_auth())
        assert resp.status_code == 422

    def test_update_and_delete_role(self, client, db_engine, guild):
        role = make_role(db_engine, guild["id"], "Temp")
        url = f"/api/guilds/{guild['id']}/roles/{role['id']}"

        resp = client.patch(url, json={"name": "Renamed"}, headers=_auth())
        assert resp.status_code == 200
        assert resp.json()["name"] == "Renamed"

        assert client.delete(url, headers=_auth()).status_code == 204
        assert client.get(url, headers=_auth()).status_code == 404

    def test_reorder_roles(self, client, db_engine, guild):
        a = make_role(db_engine, guild["id"], "A")
        b = make_role(db_engine, guild["id"], "B")
        resp = client.put(
            f"/api/guilds/{guild['id']}/roles/order",
            json={"role_ids": [b["id"], a["id"]]},
            headers=_auth(),
        )
        assert resp.status_code == 200
        names = [r["name"] for r in resp.json()["roles"]]
        assert names == ["owner", "B", "A", "general"]

    def test_assign_and_remove(self, client, db_engine, guild):
        role = make_role(db_engine, guild["id"], "Helpers")
        url = f"/api/guilds/{guild['id']}/members/carol/roles/{role['id']}"

        assert client.put(url, headers=_auth()).json() == {"changed": True}
        assert client.put(url, headers=_auth()).json() == {"changed": False}
        roles = client.get(f"/api/guilds/{guild['id']}/members/carol/roles", headers=_auth()).json()
        assert [r["name"] for r in roles["roles"]] == ["Helpers", "general"]
        assert client.delete(url, headers=_auth()).json() == {"changed": True}

    def test_non_member_cannot_read_roles(self, client, db_engine, guild):
        role = make_role(db_engine, guild["id"], "Hidden")
        base = f"/api/guilds/{guild['id']}"
        for url in (f"{base}/roles", f"{base}/roles/{role['id']}", f"{base}/members/{OWNER_ID}/roles"):
            assert client.get(url, headers=_auth("stranger")).status_code == 403

    def test_member_can_read_roles(self, client, guild):
        resp = client.get(f"/api/guilds/{guild['id']}/roles", headers=_auth("alice"))
        assert resp.status_code == 200
        assert len(resp.json()["roles"]) == 2

    def test_roles_of_missing_guild(self, client):
        assert client.get("/api/guilds/no-such-guild/roles", headers=_auth()).status_code == 404
        resp = client.get(f"/api/guilds/no-such-guild/members/{OWNER_ID}/roles", headers=_auth())
        assert resp.status_code == 404

    def test_owner_role_assignment_conflicts(self, client, guild):
        roles = client.get(f"/api/guilds/{guild['id']}/roles", headers=_auth()).json()["roles"]
        owner_role_id = roles[0]["id"]
        resp = client.put(
            f"/api/guilds/{guild['id']}/members/alice/roles/{owner_role_id}", headers=_auth()
        )
        assert resp.status_code == 409


# ===========================================================================
# Channels
# ===========================================================================
class TestChannelRoutes:
    def test_create_move_delete(self, client, guild):
        ids = []
        for name in ("a", "b", "c"):
            resp = client.post(
                f"/api/guilds/{guild['id']}/channels", json={"name": name}, headers=_auth()
            )
            assert resp.status_code == 201
            ids.append(resp.json()["id"])

        resp = client.patch(f"/api/channels/{ids[2]}", json={"position": 0}, headers=_auth())
        assert resp.json()["position"] == 0

        listed = client.get(f"/api/guilds/{guild['id']}/channels", headers=_auth("alice")).json()
        assert [c["name"] for c in listed["channels"]] == ["c", "a", "b"]

        assert client.delete(f"/api/channels/{ids[0]}", headers=_auth()).status_code == 204
        listed = client.get(f"/api/guilds/{guild['id']}/channels", headers=_auth()).json()
        assert [(c["name"], c["position"]) for c in listed["channels"]] == [("c", 0), ("b", 1)]

    def test_bad_position_is_unprocessable(self, client, guild):
        resp = client.post(f"/api/guilds/{guild['id']}/channels", json={"name": "a"}, headers=_auth())
        channel_id = resp.json()["id"]
        resp = client.patch(f"/api/channels/{channel_id}", json={"position": 5}, headers=_auth())
        assert resp.status_code == 422

    def test_unknown_type_is_unprocessable(self, client, guild):
        resp = client.post(
            f"/api/guilds/{guild['id']}/channels",
            json={"name": "a", "type": "forum"},
            headers=_auth(),
        )
        assert resp.status_code == 422

    def test_get_missing_channel(self, client):
        assert client.get("/api/channels/nope", headers=_auth()).status_code == 404

    def test_member_cannot_create(self, client, guild):
        resp = client.post(
            f"/api/guilds/{guild['id']}/channels", json={"name": "a"}, headers=_auth("alice")
        )
        assert resp.status_code == 403


# ===========================================================================
# Audit log
# ===========================================================================
class TestAuditRoute:
    def test_owner_reads_audit_log(self, client, guild):
        client.post(f"/api/guilds/{guild['id']}/roles", json={"name": "Logged"}, headers=_auth())
        resp = client.get(f"/api/guilds/{guild['id']}/audit", headers=_auth())
        assert resp.status_code == 200
        assert resp.json()["entries"][0]["action"] == "ROLE_CREATED"

    def test_member_without_manage_guild_is_forbidden(self, client, guild):
        resp = client.get(f"/api/guilds/{guild['id']}/audit", headers=_auth("alice"))
        assert resp.status_code == 403
