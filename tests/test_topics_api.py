"""Topic API tests — CRUD, per-user isolation, trash and restore."""

import pytest


async def _topic(client, headers, **body):
    r = await client.post("/api/topics", json=body, headers=headers)
    assert r.status_code == 200
    return r.json()


@pytest.mark.asyncio
async def test_create_and_read_topic(client, alice, auth):
    headers = auth(alice)
    topic = await _topic(client, headers, name="Work", description="Day job")
    assert topic["userId"] == alice.id
    assert topic["deletedAt"] is None

    r = await client.get(f"/api/topics/{topic['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Work"


@pytest.mark.asyncio
async def test_unnamed_topic_allowed(client, alice, auth):
    topic = await _topic(client, auth(alice))
    assert topic["name"] is None


@pytest.mark.asyncio
async def test_create_requires_login(client):
    r = await client.post("/api/topics", json={"name": "Work"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_listing_all_topics_is_forbidden(client, admin, auth):
    assert (await client.get("/api/topics")).status_code == 403
    assert (await client.get("/api/topics", headers=auth(admin))).status_code == 403


@pytest.mark.asyncio
async def test_topic_read_access(client, alice, bob, admin, auth):
    topic = await _topic(client, auth(alice), name="Private")

    r = await client.get(f"/api/topics/{topic['id']}", headers=auth(bob))
    assert r.status_code == 403

    r = await client.get(f"/api/topics/{topic['id']}", headers=auth(admin))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_topic_tasks_owner_only(client, alice, admin, auth):
    headers = auth(alice)
    topic = await _topic(client, headers, name="Work")
    await client.post(
        "/api/tasks",
        json={"description": "Plan", "topicId": topic["id"], "coordX": 10, "coordY": 20},
        headers=headers,
    )

    r = await client.get(f"/api/topics/{topic['id']}/tasks", headers=headers)
    assert r.status_code == 200
    assert [t["description"] for t in r.json()] == ["Plan"]

    r = await client.get(f"/api/topics/{topic['id']}/tasks", headers=auth(admin))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_missing_topic(client, alice, auth):
    r = await client.get("/api/topics/404", headers=auth(alice))
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_topic(client, alice, bob, auth):
    topic = await _topic(client, auth(alice), name="Old", description="Keep me")

    r = await client.patch(
        f"/api/topics/{topic['id']}", json={"name": "New"}, headers=auth(alice)
    )
    assert r.status_code == 200
    assert r.json()["name"] == "New"
    assert r.json()["description"] == "Keep me"

    r = await client.put(
        f"/api/topics/{topic['id']}", json={"name": "Mine"}, headers=auth(bob)
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_delete_topic_trashes_its_tasks(client, alice, bob, auth):
    headers = auth(alice)
    topic = await _topic(client, headers, name="Doomed")
    task = (
        await client.post(
            "/api/tasks",
            json={"description": "Inside", "topicId": topic["id"]},
            headers=headers,
        )
    ).json()

    r = await client.delete(f"/api/topics/{topic['id']}", headers=auth(bob))
    assert r.status_code == 403

    r = await client.delete(f"/api/topics/{topic['id']}", headers=headers)
    assert r.status_code == 204

    assert (await client.get(f"/api/topics/{topic['id']}", headers=headers)).status_code == 404
    assert (await client.get(f"/api/tasks/{task['id']}", headers=headers)).status_code == 404

    r = await client.get(f"/api/topics/{topic['id']}?trash=true", headers=headers)
    assert r.status_code == 200
    assert r.json()["deletedAt"] is not None

    r = await client.get(f"/api/topics/{topic['id']}/tasks?trash=true", headers=headers)
    assert [t["id"] for t in r.json()] == [task["id"]]

    trash = (await client.get(f"/api/users/{alice.id}/topics?trash=true", headers=headers)).json()
    assert [t["id"] for t in trash] == [topic["id"]]


@pytest.mark.asyncio
async def test_restore_topic_restores_tasks(client, alice, auth):
    headers = auth(alice)
    topic = await _topic(client, headers, name="Back")
    task = (
        await client.post(
            "/api/tasks",
            json={"description": "Again", "topicId": topic["id"]},
            headers=headers,
        )
    ).json()
    await client.delete(f"/api/topics/{topic['id']}", headers=headers)

    r = await client.post(f"/api/topics/{topic['id']}/restore", headers=headers)
    assert r.status_code == 200
    assert r.json()["deletedAt"] is None

    r = await client.get(f"/api/tasks/{task['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["deletedAt"] is None


@pytest.mark.asyncio
async def test_restore_live_topic_is_noop(client, alice, auth):
    headers = auth(alice)
    topic = await _topic(client, headers, name="Alive")
    r = await client.post(f"/api/topics/{topic['id']}/restore", headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Alive"
