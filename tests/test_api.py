from datetime import datetime, timedelta

from models import GroupStatus


def create(client, *members, **fields):
    body = {"members": list(members) or ["Alice"]}
    body.update(fields)
    return client.post("/api/groups", json=body)


def test_create_then_list(client):
    first = create(client, "Ann")
    assert first.status_code == 201
    response = create(client, "Bob", "Cat", notes="twins")
    assert response.status_code == 201
    group = response.get_json()
    assert group["size"] == 2
    assert group["queuePosition"] == first.get_json()["queuePosition"] + 1
    assert group["status"] == "waiting"
    assert group["activityDuration"] == 10

    listed = client.get("/api/groups").get_json()
    assert [g["id"] for g in listed] == [first.get_json()["id"], group["id"]]


def test_create_rejects_invalid_payload(client):
    response = client.post("/api/groups", json={"members": ["  "], "status": "lost"})
    assert response.status_code == 400
    body = response.get_json()
    assert body["message"] == "Invalid group data"
    assert {error["field"] for error in body["errors"]} == {"members", "status"}

    assert client.post("/api/groups", json={}).status_code == 400
    assert client.post("/api/groups", data="not json").status_code == 400
    assert client.get("/api/groups").get_json() == []


def test_create_accepts_camel_case_fields(client):
    response = create(client, "Ann", assignedStaff="Jennifer Lee", activityDuration=20, present=True)
    group = response.get_json()
    assert group["assignedStaff"] == "Jennifer Lee"
    assert group["activityDuration"] == 20
    assert group["present"] is True


def test_get_group(client):
    group = create(client, "Ann").get_json()
    assert client.get(f"/api/groups/{group['id']}").get_json() == group
    assert client.get("/api/groups/99").status_code == 404


def test_patch_stamps_start_and_end(client, store):
    group_id = create(client, "Ann").get_json()["id"]

    started = client.patch(f"/api/groups/{group_id}", json={"status": "in-progress"}).get_json()
    assert started["status"] == "in-progress"
    assert started["startTime"] is not None
    assert started["endTime"] is None

    finished = client.patch(f"/api/groups/{group_id}", json={"status": "completed"}).get_json()
    assert finished["endTime"] is not None
    assert finished["startTime"] == started["startTime"]
    assert store.get_group(group_id).status == GroupStatus.COMPLETED


def test_patch_keeps_supplied_start_time(client, store):
    group_id = create(client, "Ann").get_json()["id"]
    client.patch(f"/api/groups/{group_id}", json={
        "status": "in-progress",
        "startTime": "2026-10-17T09:15:00",
    })
    assert store.get_group(group_id).start_time == datetime(2026, 10, 17, 9, 15)


def test_patch_partial_fields(client):
    group_id = create(client, "Ann", notes="first").get_json()["id"]
    response = client.patch(f"/api/groups/{group_id}", json={"present": True, "assignedStaff": "Mike Wilson"})
    group = response.get_json()
    assert group["present"] is True
    assert group["assignedStaff"] == "Mike Wilson"
    assert group["notes"] == "first"
    assert group["status"] == "waiting"


def test_patch_errors(client):
    assert client.patch("/api/groups/7", json={"notes": "x"}).status_code == 404
    group_id = create(client, "Ann").get_json()["id"]
    response = client.patch(f"/api/groups/{group_id}", json={"activityDuration": 0})
    assert response.status_code == 400


def test_delete_group(client):
    group_id = create(client, "Ann").get_json()["id"]
    assert client.delete(f"/api/groups/{group_id}").status_code == 204
    assert client.delete(f"/api/groups/{group_id}").status_code == 404


def test_settings(client, store):
    settings = client.get("/api/settings").get_json()
    assert {s["key"] for s in settings} >= {"concurrentGroups", "activityDuration", "isBreakTime"}

    response = client.put("/api/settings/concurrentGroups", json={"value": 3})
    assert response.get_json()["value"] == "3"
    assert store.queue_settings().concurrent_groups == 3

    client.put("/api/settings/isBreakTime", json={"value": True})
    assert store.queue_settings().is_break_time is True

    assert client.put("/api/settings/activityDuration", json={}).status_code == 400


def test_staff_endpoints(client):
    names = [s["name"] for s in client.get("/api/staff").get_json()]
    assert names == ["Mike Wilson", "Jennifer Lee"]

    created = client.post("/api/staff", json={"name": "  Priya Patel "})
    assert created.status_code == 201
    assert created.get_json()["name"] == "Priya Patel"

    assert client.post("/api/staff", json={"name": "Priya Patel"}).status_code == 409
    assert client.post("/api/staff", json={"name": ""}).status_code == 400

    staff_id = created.get_json()["id"]
    assert client.delete(f"/api/staff/{staff_id}").status_code == 204
    assert client.delete(f"/api/staff/{staff_id}").status_code == 404


def test_queue_stats(client):
    create(client, "Ann", "Ben")
    create(client, "Cat", status="completed")
    assert client.get("/api/queue/stats").get_json() == {
        "totalVisitors": 3,
        "groupsInQueue": 1,
        "completedToday": 1,
        "totalGroups": 2,
        "averageDuration": None,
    }


def test_queue_estimate(client):
    ids = [create(client, name).get_json()["id"] for name in ("A", "B", "C", "D")]
    assert client.get("/api/queue/estimate").get_json()["waitMinutes"] == 20
    assert client.get(f"/api/queue/estimate?groupId={ids[3]}").get_json()["waitMinutes"] == 10
    head = client.get(f"/api/queue/estimate?groupId={ids[0]}").get_json()
    assert head == {"waitMinutes": 0, "estimatedTime": "Now"}


def test_call_next_starts_head_of_queue(client, store):
    first = create(client, "Ann").get_json()
    create(client, "Ben")
    response = client.post("/api/queue/next", json={"staff": "Mike Wilson"})
    assert response.status_code == 200
    group = response.get_json()
    assert group["id"] == first["id"]
    assert group["status"] == "in-progress"
    assert group["assignedStaff"] == "Mike Wilson"
    assert group["startTime"] is not None


def test_call_next_refusals(client, store):
    assert client.post("/api/queue/next").status_code == 404

    for name in ("A", "B", "C"):
        create(client, name)
    store.set_setting("isBreakTime", "true")
    assert client.post("/api/queue/next").status_code == 409

    store.set_setting("isBreakTime", "false")
    assert client.post("/api/queue/next").status_code == 200
    assert client.post("/api/queue/next").status_code == 200
    response = client.post("/api/queue/next")
    assert response.status_code == 409
    assert response.get_json()["message"] == "No activity slot available"


def test_overdue(client, store):
    long_ago = (datetime.now() - timedelta(minutes=30)).isoformat()
    late = create(client, "Ann", status="in-progress", startTime=long_ago, assignedStaff="Mike Wilson").get_json()
    create(client, "Ben", status="in-progress", assignedStaff="Jennifer Lee")
    create(client, "Cy", status="in-progress", startTime=long_ago)
    overdue = client.get("/api/queue/overdue").get_json()
    assert [g["id"] for g in overdue] == [late["id"]]


def test_mutations_emit_queue_updates(client, socket_client):
    group_id = create(client, "Ann").get_json()["id"]
    received = socket_client.get_received()
    assert [event["name"] for event in received] == ["update_queue"]
    assert received[0]["args"][0]["queue"] == [group_id]

    client.delete(f"/api/groups/{group_id}")
    payload = socket_client.get_received()[-1]["args"][0]
    assert payload["queue"] == []
    assert payload["stats"]["totalGroups"] == 0


def test_unknown_route_is_json(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "message" in response.get_json()


def test_status_cannot_move_backwards(client):
    ids = [create(client, name).get_json()["id"] for name in ("A", "B", "C")]
    client.patch(f"/api/groups/{ids[0]}", json={"status": "in-progress"})
    client.patch(f"/api/groups/{ids[0]}", json={"status": "completed"})

    response = client.patch(f"/api/groups/{ids[0]}", json={"status": "waiting"})
    assert response.status_code == 409
    assert response.get_json()["message"] == "Invalid status transition"
    assert client.get(f"/api/groups/{ids[0]}").get_json()["status"] == "completed"
    assert client.patch(f"/api/groups/{ids[0]}", json={"status": "in-progress"}).status_code == 409

    called = client.post("/api/queue/next").get_json()
    assert called["id"] == ids[1]


def test_status_can_skip_forward(client):
    group_id = create(client, "Ann").get_json()["id"]
    response = client.patch(f"/api/groups/{group_id}", json={"status": "completed"})
    assert response.status_code == 200
    assert response.get_json()["endTime"] is not None


def test_repeated_status_keeps_start_time(client):
    group_id = create(client, "Ann").get_json()["id"]
    started = client.patch(f"/api/groups/{group_id}", json={"status": "in-progress"}).get_json()
    again = client.patch(f"/api/groups/{group_id}", json={"status": "in-progress", "notes": "x"})
    assert again.status_code == 200
    assert again.get_json()["startTime"] == started["startTime"]


def test_queue_estimate_rejects_malformed_group_id(client):
    for name in ("A", "B", "C", "D"):
        create(client, name)
    response = client.get("/api/queue/estimate?groupId=abc")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Invalid groupId"


def test_call_next_rejects_non_text_staff(client, store):
    create(client, "Ann")
    for staff in (42, ["Mike Wilson"], {"name": "Mike Wilson"}):
        response = client.post("/api/queue/next", json={"staff": staff})
        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "staff"
    assert store.get_queued_groups()[0].assigned_staff is None


def test_stats_report_average_duration(client, store):
    group_id = create(client, "Ann").get_json()["id"]
    client.patch(f"/api/groups/{group_id}", json={
        "status": "completed",
        "startTime": "2026-10-17T10:00:00",
        "endTime": "2026-10-17T10:12:00",
    })
    assert client.get("/api/queue/stats").get_json()["averageDuration"] == 12
