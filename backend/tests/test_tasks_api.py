from bson import ObjectId
from fastapi.testclient import TestClient

from studybuddy.main import app

client = TestClient(app)


def _create(auth_headers, **overrides):
    body = {"courseId": "10", "taskDescription": "Linked list assignment"}
    body.update(overrides)
    return client.post("/task", json=body, headers=auth_headers)


def test_description_length_scenario(auth_headers, mongo_db):
    short = _create(auth_headers, taskDescription="ab")
    assert short.status_code == 400
    assert short.json() == {"message": "taskDescription must be between 3 and 500 characters"}
    assert mongo_db["tasks"].count_documents({}) == 0

    r = _create(auth_headers, taskDescription="  Linked list assignment  ")
    assert r.status_code == 201
    body = r.json()
    assert body["taskDescription"] == "Linked list assignment"
    assert set(body) == {"_id", "courseId", "taskDescription"}
    assert client.get(f"/task/{body['_id']}").json() == body


def test_task_id_scenario():
    bad = client.get("/task/abc")
    assert bad.status_code == 400
    assert bad.json() == {"message": "Invalid task ID"}
    missing = client.get(f"/task/{ObjectId()}")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Task not found"}


def test_task_field_rules(auth_headers):
    cases = [
        ({"taskDescription": None}, "courseId and taskDescription are required"),
        ({"taskDescription": 12345}, "taskDescription must be a string"),
        ({"taskDescription": "x" * 501}, "taskDescription must be between 3 and 500 characters"),
        ({"taskDifficultyRating": 0}, "taskDifficultyRating must be an integer between 1 and 5"),
        ({"taskTimeEstimate": -5}, "taskTimeEstimate must be a positive number (minutes)"),
        ({"taskTimeEstimate": 10081}, "taskTimeEstimate cannot exceed 10080 minutes (1 week)"),
        ({"taskTimeActual": -1}, "taskTimeActual must be a non-negative number (minutes)"),
        ({"taskTimeActual": "5"}, "taskTimeActual must be a non-negative number (minutes)"),
        ({"taskTimeActual": 10081}, "taskTimeActual cannot exceed 10080 minutes (1 week)"),
    ]
    for override, message in cases:
        r = _create(auth_headers, **override)
        assert r.status_code == 400, override
        assert r.json() == {"message": message}

    ok = _create(auth_headers, taskDifficultyRating=5, taskTimeEstimate=10080, taskTimeActual=0)
    assert ok.status_code == 201
    assert ok.json()["taskTimeActual"] == 0


def test_list_tasks_by_user_and_course(auth_headers):
    a = _create(auth_headers, userId="alice", courseId="c1").json()
    b = _create(auth_headers, userId="bob", courseId="c1").json()
    c = _create(auth_headers, userId="alice", courseId="c2").json()

    assert client.get("/task").json() == [a, b, c]
    assert client.get("/task", params={"userId": "alice"}).json() == [a, c]
    assert client.get("/task/course/c1").json() == [a, b]
    assert client.get("/task/course/does-not-exist").json() == []


def test_update_task(auth_headers):
    task = _create(auth_headers, taskTimeEstimate=60).json()
    url = f"/task/{task['_id']}"
    r = client.put(url, json={"taskTimeActual": 75, "taskDescription": " Linked list, part 2 "}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {**task, "taskTimeActual": 75, "taskDescription": "Linked list, part 2"}

    r = client.put(url, json={"taskDifficultyRating": 9}, headers=auth_headers)
    assert r.status_code == 400
    r = client.put(f"/task/{ObjectId()}", json={"taskTimeActual": 1}, headers=auth_headers)
    assert r.status_code == 404


def test_delete_task(auth_headers):
    task = _create(auth_headers).json()
    assert client.delete(f"/task/{task['_id']}", headers=auth_headers).status_code == 204
    assert client.get("/task").json() == []
    assert client.delete(f"/task/{task['_id']}", headers=auth_headers).json() == {"message": "Task not found"}


def test_task_user_id_must_be_a_string(auth_headers, mongo_db):
    r = _create(auth_headers, userId=42)
    assert r.status_code == 400
    assert r.json() == {"message": "userId must be a string"}
    assert mongo_db["tasks"].count_documents({}) == 0
