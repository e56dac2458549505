"""HTML surface tests — pages render the grid and share the API's guards."""

import pytest

HTML = {"Accept": "text/html"}


def _html(headers=None):
    return {**HTML, **(headers or {})}


@pytest.mark.asyncio
async def test_index_renders_demo_grid(client):
    r = await client.get("/", headers=HTML)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/html")
    assert 'class="eisenhower-graph" data-mode="read-only"' in r.text
    assert 'data-graph-readonly="true"' in r.text
    assert "translate(425.0 62.5)" in r.text
    assert "Sign in" in r.text


@pytest.mark.asyncio
async def test_index_for_verified_email_without_account(client, verifier):
    verifier.assertions["ok"] = "newcomer@example.com"
    await client.post("/auth/verify", json={"assertion": "ok"})
    r = await client.get("/", headers=HTML)
    assert "newcomer@example.com (no account yet)" in r.text


@pytest.mark.asyncio
async def test_pages_require_login(client):
    r = await client.get("/topics", headers=HTML)
    assert r.status_code == 401
    assert r.headers["content-type"].startswith("text/html")
    assert "401 Unauthorized" in r.text


@pytest.mark.asyncio
async def test_topics_page(client, alice, auth):
    headers = auth(alice)
    await client.post("/api/topics", json={"name": "Garden"}, headers=headers)
    await client.post("/api/topics", json={}, headers=headers)

    r = await client.get("/topics", headers=_html(headers))
    assert r.status_code == 200
    assert "Garden" in r.text
    assert "Untitled topic" in r.text
    assert 'href="/users"' not in r.text


@pytest.mark.asyncio
async def test_topic_page_browse_grid(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "Work"}, headers=headers)).json()
    task = (
        await client.post(
            "/api/tasks",
            json={"description": "Call <Bob>", "topicId": topic["id"], "coordX": 40, "coordY": -20},
            headers=headers,
        )
    ).json()

    r = await client.get(f"/topics/{topic['id']}", headers=_html(headers))
    assert r.status_code == 200
    assert 'data-mode="browse"' in r.text
    assert f'data-topic-id="{topic["id"]}"' in r.text
    assert f'<a href="/tasks/{task["id"]}">' in r.text
    assert "translate(350.0 300.0)" in r.text
    assert "Call &lt;Bob&gt;" in r.text
    assert "Call <Bob>" not in r.text


@pytest.mark.asyncio
async def test_topic_page_other_user(client, alice, bob, auth):
    topic = (await client.post("/api/topics", json={"name": "Mine"}, headers=auth(alice))).json()
    r = await client.get(f"/topics/{topic['id']}", headers=_html(auth(bob)))
    assert r.status_code == 403
    assert "403 Forbidden" in r.text


@pytest.mark.asyncio
async def test_create_page_seeds_editable_marker(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "T"}, headers=headers)).json()

    r = await client.get(
        f"/tasks/create?topic={topic['id']}&x=20.5&y=-40", headers=_html(headers)
    )
    assert r.status_code == 200
    assert 'data-mode="edit-position"' in r.text
    assert 'data-graph-new-task="true"' in r.text
    assert "task provisional editable" in r.text
    assert 'name="coordX" value="20.5"' in r.text
    assert 'name="coordY" value="-40.0"' in r.text
    assert f'name="topicId" value="{topic["id"]}"' in r.text


@pytest.mark.asyncio
async def test_create_page_rejects_out_of_range_seed(client, alice, auth):
    r = await client.get("/tasks/create?x=150&y=0", headers=auth(alice))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_task_page_highlights_task_among_siblings(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "T"}, headers=headers)).json()
    first = (
        await client.post(
            "/api/tasks", json={"description": "One", "topicId": topic["id"]}, headers=headers
        )
    ).json()
    await client.post(
        "/api/tasks", json={"description": "Two", "topicId": topic["id"]}, headers=headers
    )

    r = await client.get(f"/tasks/{first['id']}", headers=_html(headers))
    assert r.status_code == 200
    assert 'data-mode="read-only"' in r.text
    assert f'data-highlight-task="{first["id"]}"' in r.text
    assert "scale(1.5)" in r.text
    assert 'opacity="0.4"' in r.text
    assert r.text.count('class="task incomplete"') == 2


@pytest.mark.asyncio
async def test_admin_sees_task_alone(client, alice, admin, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "T"}, headers=headers)).json()
    task = (
        await client.post(
            "/api/tasks", json={"description": "One", "topicId": topic["id"]}, headers=headers
        )
    ).json()
    await client.post(
        "/api/tasks", json={"description": "Two", "topicId": topic["id"]}, headers=headers
    )

    r = await client.get(f"/tasks/{task['id']}", headers=_html(auth(admin)))
    assert r.status_code == 200
    assert r.text.count('class="task incomplete"') == 1


@pytest.mark.asyncio
async def test_trash_page(client, alice, auth):
    headers = auth(alice)
    task = (await client.post("/api/tasks", json={"description": "Old"}, headers=headers)).json()
    await client.delete(f"/api/tasks/{task['id']}", headers=headers)

    r = await client.get("/tasks/trash", headers=_html(headers))
    assert r.status_code == 200
    assert 'data-trash-only="true"' in r.text
    assert f'data-tasks-url="/api/users/{alice.id}/tasks?trash=true"' in r.text
    assert f'data-task-id="{task["id"]}"' in r.text
    assert "Old · deleted" in r.text


@pytest.mark.asyncio
async def test_empty_trash(client, alice, auth):
    r = await client.get("/tasks/trash", headers=_html(auth(alice)))
    assert "The trash is empty." in r.text


@pytest.mark.asyncio
async def test_users_page_admin_only(client, alice, admin, auth):
    r = await client.get("/users", headers=_html(auth(alice)))
    assert r.status_code == 403

    r = await client.get("/users", headers=_html(auth(admin)))
    assert r.status_code == 200
    assert "alice@example.com" in r.text
    assert 'href="/users"' in r.text


@pytest.mark.asyncio
async def test_trash_page_for_one_topic_reloads_from_same_filter(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "T"}, headers=headers)).json()
    filed = (
        await client.post(
            "/api/tasks", json={"description": "Filed", "topicId": topic["id"]}, headers=headers
        )
    ).json()
    loose = (await client.post("/api/tasks", json={"description": "Loose"}, headers=headers)).json()
    for task in (filed, loose):
        await client.delete(f"/api/tasks/{task['id']}", headers=headers)

    r = await client.get(f"/tasks/trash?topic={topic['id']}", headers=_html(headers))
    assert r.status_code == 200
    assert f'data-tasks-url="/api/tasks/trash?topicId={topic["id"]}"' in r.text
    assert f'data-task-id="{filed["id"]}"' in r.text
    assert f'data-task-id="{loose["id"]}"' not in r.text

    # The URL the plane reloads from returns the same set.
    r = await client.get(f"/api/tasks/trash?topicId={topic['id']}", headers=headers)
    assert [t["id"] for t in r.json()] == [filed["id"]]


# ═══════════════════════════════════════════════════════════
# Creating tasks from the grid
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_topic_page_create_mode(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "Work"}, headers=headers)).json()

    r = await client.get(f"/topics/{topic['id']}?mode=create", headers=_html(headers))
    assert r.status_code == 200
    assert 'data-mode="create"' in r.text
    assert 'data-graph-create="true"' in r.text
    assert f'href="/tasks/create?topic={topic["id"]}&amp;x=0.0&amp;y=0.0"' in r.text

    r = await client.get(f"/topics/{topic['id']}", headers=_html(headers))
    assert 'data-graph-create' not in r.text
    assert f'href="/topics/{topic["id"]}?mode=create"' in r.text


@pytest.mark.asyncio
async def test_topic_page_rejects_unknown_mode(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "Work"}, headers=headers)).json()
    r = await client.get(f"/topics/{topic['id']}?mode=edit", headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_create_form_posts_to_page_handler(client, alice, auth):
    r = await client.get("/tasks/create?x=10&y=20", headers=_html(auth(alice)))
    assert '<form class="task-form" method="post" action="/tasks/create">' in r.text


@pytest.mark.asyncio
async def test_submit_create_form(client, alice, auth):
    headers = auth(alice)
    topic = (await client.post("/api/topics", json={"name": "Work"}, headers=headers)).json()

    r = await client.post(
        "/tasks/create",
        data={
            "topicId": str(topic["id"]),
            "coordX": "10.0",
            "coordY": "20.0",
            "description": "Call the bank",
            "dueDate": "",
        },
        headers=_html(headers),
    )
    assert r.status_code == 303
    task_id = int(r.headers["location"].rsplit("/", 1)[1])
    assert r.headers["location"] == f"/tasks/{task_id}"

    task = (await client.get(f"/api/tasks/{task_id}", headers=headers)).json()
    assert task["description"] == "Call the bank"
    assert (task["coordX"], task["coordY"]) == (10.0, 20.0)
    assert task["topicId"] == topic["id"]
    assert task["dueDate"] is None


@pytest.mark.asyncio
async def test_submit_create_form_validates(client, alice, auth):
    headers = auth(alice)
    r = await client.post(
        "/tasks/create",
        data={"coordX": "150", "coordY": "0", "description": "Too far"},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json()["message"].startswith("coordX:")

    r = await client.post("/tasks/create", data={"coordX": "1", "coordY": "1"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["message"] == "description: Field required"

    tasks = (await client.get(f"/api/users/{alice.id}/tasks", headers=headers)).json()
    assert tasks == []


@pytest.mark.asyncio
async def test_submit_create_form_requires_login(client):
    r = await client.post("/tasks/create", data={"description": "Anon"})
    assert r.status_code == 401
