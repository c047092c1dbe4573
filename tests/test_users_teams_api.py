import pytest


@pytest.mark.asyncio
async def test_admin_creates_agent_with_empty_permissions(client, admin_header):
    resp = await client.post(
        "/api/users",
        json={
            "username": "new.agent",
            "email": "new.agent@example.com",
            "password": "password123",
            "is_agent": True,
            "agent_id": "2002",
        },
        headers=admin_header,
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["agent_id"] == "2002"
    assert data["is_admin"] is False
    assert data["permissions"]["criteria"] == {"read": False, "write": False}

    login = await client.post("/api/auth/login", json={"username": "new.agent", "password": "password123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_new_admin_gets_all_permissions(client, admin_header):
    resp = await client.post(
        "/api/users",
        json={"username": "boss", "email": "boss@example.com", "password": "password123", "is_agent": False},
        headers=admin_header,
    )
    assert resp.status_code == 201
    assert resp.json()["agent_id"] is None
    assert resp.json()["permissions"]["exports"] == {"read": True}


@pytest.mark.asyncio
async def test_duplicate_username_rejected(client, admin_header, agent_user):
    resp = await client.post(
        "/api/users",
        json={"username": "agent", "email": "other@example.com", "password": "password123"},
        headers=admin_header,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_user_permissions(client, admin_header, agent_user):
    resp = await client.put(
        f"/api/users/{agent_user.id}",
        json={"permissions": {"criteria": {"read": True}}, "first_name": "Alex"},
        headers=admin_header,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["first_name"] == "Alex"
    assert data["permissions"]["criteria"] == {"read": True, "write": False}


@pytest.mark.asyncio
async def test_users_endpoints_require_admin(client, agent_header):
    resp = await client.get("/api/users", headers=agent_header)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_team_lifecycle(client, admin_header, agent_user):
    resp = await client.post("/api/teams", json={"name": "Tier 1", "description": "Frontline"}, headers=admin_header)
    assert resp.status_code == 201
    team = resp.json()
    assert team["member_count"] == 0

    dup = await client.post("/api/teams", json={"name": "Tier 1"}, headers=admin_header)
    assert dup.status_code == 400

    add = await client.post(
        f"/api/teams/{team['id']}/members",
        json={"user_id": agent_user.id, "team_lead": True},
        headers=admin_header,
    )
    assert add.status_code == 201
    assert add.json()["username"] == "agent"
    assert add.json()["team_lead"] is True

    again = await client.post(
        f"/api/teams/{team['id']}/members", json={"user_id": agent_user.id}, headers=admin_header
    )
    assert again.status_code == 400

    members = await client.get(f"/api/teams/{team['id']}/members", headers=admin_header)
    assert [member["user_id"] for member in members.json()] == [agent_user.id]

    listing = await client.get("/api/teams", headers=admin_header)
    assert listing.json()[0]["member_count"] == 1

    renamed = await client.put(f"/api/teams/{team['id']}", json={"name": "Tier One"}, headers=admin_header)
    assert renamed.json()["name"] == "Tier One"

    removed = await client.delete(f"/api/teams/{team['id']}/members/{agent_user.id}", headers=admin_header)
    assert removed.status_code == 204

    deleted = await client.delete(f"/api/teams/{team['id']}", headers=admin_header)
    assert deleted.status_code == 204
    missing = await client.get(f"/api/teams/{team['id']}", headers=admin_header)
    assert missing.status_code == 404
