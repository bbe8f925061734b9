from bson import ObjectId
from fastapi.testclient import TestClient

from studybuddy.main import app

client = TestClient(app)


def _create(auth_headers, **overrides):
    body = {"name": "Ada Lovelace", "emailAddress": "ada@example.com"}
    body.update(overrides)
    return client.post("/user", json=body, headers=auth_headers)


def test_create_and_fetch_user(auth_headers):
    r = _create(auth_headers, name="  Ada Lovelace ", emailAddress=" ada@example.com ")
    assert r.status_code == 201
    created = r.json()
    assert set(created) == {"_id", "name", "emailAddress"}
    assert created["name"] == "Ada Lovelace"
    assert created["emailAddress"] == "ada@example.com"
    assert ObjectId.is_valid(created["_id"])

    fetched = client.get(f"/user/{created['_id']}")
    assert fetched.status_code == 200
    assert fetched.json() == created

    listed = client.get("/user")
    assert listed.status_code == 200
    assert listed.json() == [created]


def test_list_users_filtered_by_user_id(auth_headers):
    first = _create(auth_headers).json()
    _create(auth_headers, name="Grace Hopper", emailAddress="grace@example.com")
    r = client.get("/user", params={"userId": first["_id"]})
    assert r.status_code == 200
    assert r.json() == [first]
    assert client.get("/user", params={"userId": "nope"}).json() == []


def test_create_user_requires_fields(auth_headers, mongo_db):
    r = client.post("/user", json={"name": "Ada"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "name and emailAddress are required"}
    assert mongo_db["users"].count_documents({}) == 0


def test_create_user_field_rules(auth_headers):
    r = _create(auth_headers, name="A")
    assert r.status_code == 400
    assert r.json()["message"] == "name must be between 2 and 100 characters"
    r = _create(auth_headers, name=12345)
    assert r.json()["message"] == "name must be a string"
    r = _create(auth_headers, emailAddress="not-an-email")
    assert r.status_code == 400
    assert r.json()["message"] == "emailAddress must be a valid email address"


def test_duplicate_email_is_conflict(auth_headers, mongo_db):
    assert _create(auth_headers).status_code == 201
    r = _create(auth_headers, name="Someone Else", emailAddress="  ada@example.com")
    assert r.status_code == 409
    assert r.json() == {"message": "A user with this emailAddress already exists"}
    assert mongo_db["users"].count_documents({}) == 1
    # uniqueness is case-sensitive
    assert _create(auth_headers, emailAddress="ADA@example.com").status_code == 201


def test_update_user_email_uniqueness_excludes_self(auth_headers):
    ada = _create(auth_headers).json()
    grace = _create(auth_headers, name="Grace Hopper", emailAddress="grace@example.com").json()

    same = client.put(f"/user/{ada['_id']}", json={"emailAddress": "ada@example.com"}, headers=auth_headers)
    assert same.status_code == 200

    taken = client.put(f"/user/{ada['_id']}", json={"emailAddress": "grace@example.com"}, headers=auth_headers)
    assert taken.status_code == 409
    assert client.get(f"/user/{grace['_id']}").json() == grace


def test_update_user_partial(auth_headers):
    ada = _create(auth_headers).json()
    r = client.put(f"/user/{ada['_id']}", json={"name": " Countess Ada "}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {**ada, "name": "Countess Ada"}


def test_update_user_errors(auth_headers):
    ada = _create(auth_headers).json()
    r = client.put(f"/user/{ada['_id']}", json={"favouriteColour": "green"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "No valid fields to update"}
    r = client.put("/user/123", json={"name": "Ada"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid user ID"}
    r = client.put(f"/user/{ObjectId()}", json={"name": "Ada"}, headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}


def test_delete_user_twice(auth_headers):
    ada = _create(auth_headers).json()
    r = client.delete(f"/user/{ada['_id']}", headers=auth_headers)
    assert r.status_code == 204
    assert r.content == b""
    again = client.delete(f"/user/{ada['_id']}", headers=auth_headers)
    assert again.status_code == 404
    assert client.get(f"/user/{ada['_id']}").status_code == 404


def test_get_user_bad_id():
    r = client.get("/user/not-an-id")
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid user ID"}


def test_unique_index_rejects_duplicate_email(auth_headers, monkeypatch, mongo_db):
    ada = _create(auth_headers).json()
    grace = _create(auth_headers, name="Grace Hopper", emailAddress="grace@example.com").json()
    # skip the lookup so only the database index guards uniqueness
    monkeypatch.setattr("studybuddy.repositories.UserRepository.find_by_email", lambda *_a, **_kw: None)

    r = _create(auth_headers, name="Ada Again")
    assert r.status_code == 409
    assert r.json() == {"message": "A user with this emailAddress already exists"}
    assert mongo_db["users"].count_documents({}) == 2

    r = client.put(f"/user/{grace['_id']}", json={"emailAddress": ada["emailAddress"]}, headers=auth_headers)
    assert r.status_code == 409
    assert r.json() == {"message": "A user with this emailAddress already exists"}
    assert client.get(f"/user/{grace['_id']}").json() == grace


def test_update_missing_user_is_not_found_before_email_check(auth_headers):
    _create(auth_headers)
    r = client.put(f"/user/{ObjectId()}", json={"emailAddress": "ada@example.com"}, headers=auth_headers)
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}
