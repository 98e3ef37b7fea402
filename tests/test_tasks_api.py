"""HTTP tests for /api/tasks and the pending-list rules of task writes."""

import uuid

import pytest

pytestmark = pytest.mark.asyncio


async def test_create_requires_name_and_deadline(client):
    for body in ({"name": "x"}, {"deadline": "2030-01-01"}, {"name": "", "deadline": "2030-01-01"}):
        resp = await client.post("/api/tasks", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"message": "Name and deadline are required", "data": None}


async def test_create_with_defaults(api):
    task = await api.create_task()
    assert task["description"] == ""
    assert task["completed"] is False
    assert task["assignedUser"] == ""
    assert task["assignedUserName"] == "unassigned"
    assert uuid.UUID(task["_id"])
    assert task["dateCreated"]


async def test_create_assigned_adds_to_pending(api):
    alice = await api.create_user("Alice")
    task = await api.create_task(assignedUser=alice["_id"], assignedUserName="Bogus")

    assert task["assignedUser"] == alice["_id"]
    assert task["assignedUserName"] == "Alice"
    assert (await api.user(alice["_id"]))["pendingTasks"] == [task["_id"]]


async def test_create_completed_does_not_touch_pending(api):
    alice = await api.create_user("Alice")
    await api.create_task(assignedUser=alice["_id"], completed=True)
    assert (await api.user(alice["_id"]))["pendingTasks"] == []


async def test_create_with_unknown_user_fails_without_writing(client, api):
    resp = await client.post(
        "/api/tasks",
        json={
            "name": "x",
            "deadline": "2030-01-01",
            "assignedUser": str(uuid.uuid4()),
        },
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "assignedUser not found"
    assert await api.all_tasks() == []


async def test_non_string_assignee_is_unassigned(api):
    task = await api.create_task(assignedUser=123, assignedUserName="Alice")
    assert task["assignedUser"] == ""
    assert task["assignedUserName"] == "unassigned"


async def test_get_one_and_not_found(client, api):
    task = await api.create_task()
    resp = await client.get(f"/api/tasks/{task['_id']}", params={"select": '{"name": 1}'})
    assert resp.status_code == 200
    assert resp.json()["data"] == {"_id": task["_id"], "name": "Write report"}

    for missing in (str(uuid.uuid4()), "not-an-id"):
        resp = await client.get(f"/api/tasks/{missing}")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Task not found", "data": None}


async def test_complete_via_put_removes_from_pending(client, api):
    alice = await api.create_user("Alice")
    task = await api.create_task(assignedUser=alice["_id"])
    assert (await api.user(alice["_id"]))["pendingTasks"] == [task["_id"]]

    resp = await client.put(
        f"/api/tasks/{task['_id']}",
        json={
            "name": task["name"],
            "deadline": task["deadline"],
            "assignedUser": alice["_id"],
            "completed": True,
        },
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["completed"] is True
    assert updated["dateCreated"] == task["dateCreated"]
    assert (await api.user(alice["_id"]))["pendingTasks"] == []
    await api.assert_consistent()


async def test_reopen_via_put_adds_back(client, api):
    alice = await api.create_user("Alice")
    task = await api.create_task(assignedUser=alice["_id"], completed=True)

    await client.put(
        f"/api/tasks/{task['_id']}",
        json={"name": "n", "deadline": "2030-01-01", "assignedUser": alice["_id"]},
    )
    assert (await api.user(alice["_id"]))["pendingTasks"] == [task["_id"]]


async def test_reassign_via_put_moves_between_users(client, api):
    alice = await api.create_user("Alice")
    bob = await api.create_user("Bob")
    task = await api.create_task(assignedUser=alice["_id"])

    resp = await client.put(
        f"/api/tasks/{task['_id']}",
        json={"name": "n", "deadline": "2030-01-01", "assignedUser": bob["_id"]},
    )
    assert resp.json()["data"]["assignedUserName"] == "Bob"
    assert (await api.user(alice["_id"]))["pendingTasks"] == []
    assert (await api.user(bob["_id"]))["pendingTasks"] == [task["_id"]]
    await api.assert_consistent()


async def test_put_without_assignee_unassigns(client, api):
    alice = await api.create_user("Alice")
    task = await api.create_task(assignedUser=alice["_id"])

    resp = await client.put(
        f"/api/tasks/{task['_id']}",
        json={"name": "n", "deadline": "2030-01-01", "description": "replaced"},
    )
    data = resp.json()["data"]
    assert data["assignedUser"] == ""
    assert data["assignedUserName"] == "unassigned"
    assert data["description"] == "replaced"
    assert (await api.user(alice["_id"]))["pendingTasks"] == []


async def test_put_failures_leave_task_untouched(client, api):
    alice = await api.create_user("Alice")
    task = await api.create_task(assignedUser=alice["_id"])

    resp = await client.put(f"/api/tasks/{task['_id']}", json={"name": "only name"})
    assert resp.status_code == 400

    resp = await client.put(
        f"/api/tasks/{task['_id']}",
        json={"name": "n", "deadline": "2030-01-01", "assignedUser": str(uuid.uuid4())},
    )
    assert resp.status_code == 400
    assert await api.task(task["_id"]) == task
    assert (await api.user(alice["_id"]))["pendingTasks"] == [task["_id"]]

    resp = await client.put(
        f"/api/tasks/{uuid.uuid4()}", json={"name": "n", "deadline": "2030-01-01"}
    )
    assert resp.status_code == 404


async def test_delete_pulls_from_owner(client, api):
    alice = await api.create_user("Alice")
    keep = await api.create_task("keep", assignedUser=alice["_id"])
    gone = await api.create_task("gone", assignedUser=alice["_id"])

    resp = await client.delete(f"/api/tasks/{gone['_id']}")
    assert resp.status_code == 204
    assert resp.content == b""
    assert (await api.user(alice["_id"]))["pendingTasks"] == [keep["_id"]]

    resp = await client.delete(f"/api/tasks/{gone['_id']}")
    assert resp.status_code == 404


async def test_list_filters_sort_select_and_count(client, api):
    alice = await api.create_user("Alice")
    await api.create_task("b", completed=True)
    await api.create_task("a", assignedUser=alice["_id"])
    await api.create_task("c")

    resp = await client.get(
        "/api/tasks",
        params={
            "where": '{"completed": false}',
            "sort": '{"name": 1}',
            "select": '{"name": 1, "_id": 0}',
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"message": "OK", "data": [{"name": "a"}, {"name": "c"}]}

    resp = await client.get(
        "/api/tasks", params={"where": f'{{"assignedUser": "{alice["_id"]}"}}', "count": "true"}
    )
    assert resp.json()["data"] == 1

    resp = await client.get("/api/tasks", params={"sort": '{"name": -1}', "skip": 1, "limit": 1})
    assert [t["name"] for t in resp.json()["data"]] == ["b"]


async def test_list_by_id_set(client, api):
    first = await api.create_task("first")
    await api.create_task("second")
    third = await api.create_task("third")

    where = f'{{"_id": {{"$in": ["{first["_id"]}", "{third["_id"]}"]}}}}'
    resp = await client.get("/api/tasks", params={"where": where, "sort": '{"name": 1}'})
    assert [t["name"] for t in resp.json()["data"]] == ["first", "third"]


async def test_list_default_limit_is_100(client, api):
    for i in range(101):
        await api.create_task(f"t{i}")
    resp = await client.get("/api/tasks")
    assert len(resp.json()["data"]) == 100
    resp = await client.get("/api/tasks", params={"count": "true"})
    assert resp.json()["data"] == 101


async def test_list_rejects_malformed_json(client):
    resp = await client.get("/api/tasks", params={"where": "{oops"})
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid JSON in query parameters", "data": None}


async def test_invalid_deadline_is_a_400(client):
    resp = await client.post("/api/tasks", json={"name": "x", "deadline": "someday"})
    assert resp.status_code == 400
    assert resp.json()["data"] is None
    assert resp.json()["message"].startswith("Invalid request")
