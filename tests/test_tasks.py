def test_positions_follow_creation_order(client, alice, make_list, make_task):
    work = make_list(alice)
    created = [make_task(alice, work["id"], title) for title in ["A", "B", "C", "D"]]
    assert [t["position"] for t in created] == [0, 1, 2, 3]
    listed = client.get(f"/api/lists/{work['id']}/tasks", headers=alice).json()
    assert [t["title"] for t in listed] == ["A", "B", "C", "D"]


def test_new_task_defaults(client, alice, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "  Buy milk ")
    assert task["title"] == "Buy milk"
    assert task["list_id"] == work["id"]
    assert task["is_completed"] is False
    assert task["is_important"] is False
    assert task["completed_at"] is None


def test_gaps_are_kept_and_append_uses_max(client, alice, make_list, make_task):
    work = make_list(alice)
    a, b, c = (make_task(alice, work["id"], t) for t in "ABC")
    assert client.delete(f"/api/tasks/{b['id']}", headers=alice).status_code == 204
    d = make_task(alice, work["id"], "D")
    positions = [t["position"] for t in client.get(f"/api/lists/{work['id']}/tasks", headers=alice).json()]
    assert positions == [0, 2, 3]
    assert d["position"] == 3


def test_title_validation(client, alice, make_list, make_task):
    work = make_list(alice)
    url = f"/api/lists/{work['id']}/tasks"
    for title in ["", "   ", None, "x" * 501]:
        resp = client.post(url, json={"title": title}, headers=alice)
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["field"] == "title"
    assert client.post(url, json={"title": "x" * 500}, headers=alice).status_code == 201

    task = make_task(alice, work["id"], "Ok")
    resp = client.patch(f"/api/tasks/{task['id']}", json={"title": "  "}, headers=alice)
    assert resp.status_code == 400
    resp = client.patch(f"/api/tasks/{task['id']}", json={"title": "y" * 501}, headers=alice)
    assert resp.status_code == 400


def test_completion_sets_and_clears_timestamp(client, alice, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "A")
    url = f"/api/tasks/{task['id']}"

    done = client.patch(url, json={"is_completed": True}, headers=alice).json()
    assert done["is_completed"] is True
    assert done["completed_at"] is not None

    again = client.patch(url, json={"is_completed": True}, headers=alice).json()
    assert again["completed_at"] == done["completed_at"]

    undone = client.patch(url, json={"is_completed": False}, headers=alice).json()
    assert undone["is_completed"] is False
    assert undone["completed_at"] is None


def test_completion_keeps_position(client, alice, make_list, make_task):
    work = make_list(alice)
    tasks = [make_task(alice, work["id"], t) for t in "ABC"]
    client.patch(f"/api/tasks/{tasks[0]['id']}", json={"is_completed": True}, headers=alice)
    resp = client.patch(f"/api/tasks/{tasks[0]['id']}", json={"is_completed": False}, headers=alice)
    assert resp.json()["position"] == 0


def test_partial_update_leaves_other_fields(client, alice, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "A")
    url = f"/api/tasks/{task['id']}"
    resp = client.patch(url, json={"is_important": True}, headers=alice).json()
    assert resp["is_important"] is True
    assert resp["title"] == "A"
    assert resp["is_completed"] is False

    resp = client.patch(url, json={"title": "B", "is_completed": True}, headers=alice).json()
    assert resp["title"] == "B"
    assert resp["is_completed"] is True
    assert resp["is_important"] is True


def test_empty_update_is_a_noop(client, alice, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "A")
    resp = client.patch(f"/api/tasks/{task['id']}", json={}, headers=alice)
    assert resp.status_code == 200
    assert resp.json() == task
    resp = client.patch(f"/api/tasks/{task['id']}", json={"is_important": None}, headers=alice)
    assert resp.json() == task


def test_delete_task(client, alice, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "A")
    assert client.delete(f"/api/tasks/{task['id']}", headers=alice).status_code == 204
    assert client.delete(f"/api/tasks/{task['id']}", headers=alice).status_code == 404
    assert client.get(f"/api/lists/{work['id']}/tasks", headers=alice).json() == []


def test_task_in_unknown_list(client, alice):
    resp = client.post("/api/lists/424242/tasks", json={"title": "A"}, headers=alice)
    assert resp.status_code == 404


def test_other_users_tasks_look_missing(client, alice, bob, make_list, make_task):
    work = make_list(alice)
    task = make_task(alice, work["id"], "A")
    url = f"/api/tasks/{task['id']}"
    missing = client.patch("/api/tasks/999999", json={"title": "x"}, headers=bob)
    assert missing.status_code == 404
    for resp in [
        client.patch(url, json={"title": "Hijacked"}, headers=bob),
        client.delete(url, headers=bob),
        client.post(f"/api/lists/{work['id']}/tasks", json={"title": "Spam"}, headers=bob),
    ]:
        assert resp.status_code == 404
    assert client.get(f"/api/lists/{work['id']}/tasks", headers=alice).json()[0]["title"] == "A"


def test_important_tasks_across_lists(client, alice, bob, make_list, make_task):
    work = make_list(alice, "Work")
    home = make_list(alice, "Home")
    w1 = make_task(alice, work["id"], "W1")
    h1 = make_task(alice, home["id"], "H1")
    make_task(alice, work["id"], "W2")
    for t in (w1, h1):
        client.patch(f"/api/tasks/{t['id']}", json={"is_important": True}, headers=alice)

    bob_list = make_list(bob, "Work")
    b1 = make_task(bob, bob_list["id"], "B1")
    client.patch(f"/api/tasks/{b1['id']}", json={"is_important": True}, headers=bob)

    important = client.get("/api/tasks/important", headers=alice).json()
    assert [(t["title"], t["list_name"]) for t in important] == [("H1", "Home"), ("W1", "Work")]
    assert important[1]["list_id"] == work["id"]


def test_example_scenario(client, register, make_list, make_task):
    alice = register("alice")
    lists = client.get("/api/lists", headers=alice).json()
    assert lists[0]["name"] == "My Day"

    work = make_list(alice, "Work")
    a, b, c = (make_task(alice, work["id"], t) for t in "ABC")
    assert [a["position"], b["position"], c["position"]] == [0, 1, 2]

    orders = [{"id": c["id"], "position": 0}, {"id": a["id"], "position": 1}, {"id": b["id"], "position": 2}]
    resp = client.patch(f"/api/lists/{work['id']}/tasks/reorder", json={"taskOrders": orders}, headers=alice)
    assert resp.status_code == 200
    titles = [t["title"] for t in client.get(f"/api/lists/{work['id']}/tasks", headers=alice).json()]
    assert titles == ["C", "A", "B"]

    client.patch(f"/api/tasks/{c['id']}", json={"is_important": True}, headers=alice)
    important = client.get("/api/tasks/important", headers=alice).json()
    assert [(t["title"], t["list_name"]) for t in important] == [("C", "Work")]

    assert client.delete(f"/api/lists/{lists[0]['id']}", headers=alice).status_code == 403
