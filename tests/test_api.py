"""End-to-end API flows through the FastAPI app."""

from datetime import datetime, timedelta, timezone

import jwt

from buddy.config import settings

API = "/api/v1"


def _register(client, username):
    r = client.post(f"{API}/users", json={"username": username, "name": username.title()})
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    return data["user"]["id"], {"Authorization": f"Bearer {data['access_token']}"}


def test_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get(f"{API}/health").json() == {"status": "ok"}


def test_requires_token(client):
    r = client.get(f"{API}/collaboration-goals")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"

    r = client.get(f"{API}/collaboration-goals", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"


def test_expired_and_foreign_tokens(client):
    user_id, _ = _register(client, "alice")
    past = datetime.now(timezone.utc) - timedelta(minutes=5)

    expired = jwt.encode(
        {"sub": user_id, "exp": past, "type": "access"},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    r = client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Token has expired"

    no_subject = jwt.encode(
        {"type": "access"}, settings.jwt_secret, algorithm=settings.jwt_algorithm
    )
    r = client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {no_subject}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token subject"


def test_register_and_profile(client):
    user_id, headers = _register(client, "alice")
    r = client.get(f"{API}/users/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["user"] == {
        "id": user_id,
        "username": "alice",
        "name": "Alice",
        "profile_image": "",
    }

    r = client.post(f"{API}/users", json={"username": "alice"})
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "Username is already taken"}


def test_collaboration_flow(client):
    alice, alice_h = _register(client, "alice")
    bob, bob_h = _register(client, "bob")

    r = client.post(f"{API}/friends", json={"friend_id": bob}, headers=alice_h)
    assert r.status_code == 201
    r = client.get(f"{API}/friends", headers=bob_h)
    assert [f["id"] for f in r.json()["data"]["friends"]] == [alice]

    # Create
    r = client.post(
        f"{API}/collaboration-goals",
        json={"title": "Read 12 books", "target": 12},
        headers=alice_h,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    goal = body["data"]["goal"]
    goal_id = goal["id"]
    assert goal["status"] == "not-started"
    assert [p["id"] for p in goal["participants"]] == [alice]

    # Private goal is hidden from bob
    r = client.get(f"{API}/collaboration-goals/{goal_id}", headers=bob_h)
    assert r.status_code == 403
    assert r.json()["success"] is False

    # Invite
    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/invitations",
        json={"recipient_ids": [bob]},
        headers=alice_h,
    )
    assert r.status_code == 201
    invitation_id = r.json()["data"]["invitations"][0]["id"]

    r = client.get(f"{API}/collaboration-goals/invitations", headers=bob_h)
    pending = r.json()["data"]["invitations"]
    assert [i["id"] for i in pending] == [invitation_id]
    assert pending[0]["goal"]["title"] == "Read 12 books"
    assert pending[0]["sender"]["username"] == "alice"

    r = client.post(
        f"{API}/collaboration-goals/invitations/{invitation_id}/accept", headers=bob_h
    )
    assert r.status_code == 200
    assert r.json()["data"]["invitation"]["status"] == "accepted"

    r = client.post(
        f"{API}/collaboration-goals/invitations/{invitation_id}/decline", headers=bob_h
    )
    assert r.status_code == 400

    # Progress
    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/progress",
        json={"increment": 8, "note": "Holiday reading"},
        headers=bob_h,
    )
    assert r.status_code == 200
    assert r.json()["data"]["goal"]["progress"] == 8

    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/progress", json={"increment": 5}, headers=alice_h
    )
    goal = r.json()["data"]["goal"]
    assert goal["progress"] == 12
    assert goal["status"] == "completed"

    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/progress", json={"increment": 0}, headers=alice_h
    )
    assert r.status_code == 422

    r = client.get(f"{API}/collaboration-goals/{goal_id}/activity", headers=bob_h)
    activity = r.json()["data"]["activity"]
    assert [a["after"] for a in activity] == [12, 8]
    assert activity[1]["note"] == "Holiday reading"

    # Listing
    r = client.get(f"{API}/collaboration-goals", headers=bob_h)
    data = r.json()["data"]
    assert data["total"] == 1
    assert data["goals"][0]["id"] == goal_id

    # Leave and delete
    r = client.post(f"{API}/collaboration-goals/{goal_id}/leave", headers=alice_h)
    assert r.status_code == 400
    r = client.post(f"{API}/collaboration-goals/{goal_id}/leave", headers=bob_h)
    assert r.status_code == 200

    r = client.delete(f"{API}/collaboration-goals/{goal_id}", headers=bob_h)
    assert r.status_code == 403
    r = client.delete(f"{API}/collaboration-goals/{goal_id}", headers=alice_h)
    assert r.status_code == 200
    r = client.get(f"{API}/collaboration-goals/{goal_id}", headers=alice_h)
    assert r.status_code == 404


def test_update_and_remove_participant(client):
    alice, alice_h = _register(client, "alice")
    bob, bob_h = _register(client, "bob")
    client.post(f"{API}/friends", json={"friend_id": bob}, headers=alice_h)

    goal_id = client.post(
        f"{API}/collaboration-goals", json={"title": "Run"}, headers=alice_h
    ).json()["data"]["goal"]["id"]

    r = client.put(
        f"{API}/collaboration-goals/{goal_id}",
        json={"visibility": "public", "category": "fitness"},
        headers=alice_h,
    )
    assert r.status_code == 200
    goal = r.json()["data"]["goal"]
    assert goal["visibility"] == "public"
    assert goal["category"] == "fitness"
    assert goal["title"] == "Run"

    r = client.put(f"{API}/collaboration-goals/{goal_id}", json={"title": "x"}, headers=bob_h)
    assert r.status_code == 403

    # Public goal is readable by anyone
    assert client.get(f"{API}/collaboration-goals/{goal_id}", headers=bob_h).status_code == 200

    inv = client.post(
        f"{API}/collaboration-goals/{goal_id}/invitations",
        json={"recipient_ids": [bob], "message": "Come run"},
        headers=alice_h,
    ).json()["data"]["invitations"][0]
    assert inv["message"] == "Come run"

    r = client.get(f"{API}/collaboration-goals/{goal_id}/invitations", headers=alice_h)
    assert [i["recipient"]["username"] for i in r.json()["data"]["invitations"]] == ["bob"]

    client.post(f"{API}/collaboration-goals/invitations/{inv['id']}/accept", headers=bob_h)

    r = client.delete(
        f"{API}/collaboration-goals/{goal_id}/participants/{bob}", headers=alice_h
    )
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["data"]["goal"]["participants"]] == [alice]


def test_cancel_invitation_endpoint(client):
    alice, alice_h = _register(client, "alice")
    bob, bob_h = _register(client, "bob")
    client.post(f"{API}/friends", json={"friend_id": bob}, headers=alice_h)
    goal_id = client.post(
        f"{API}/collaboration-goals", json={"title": "Meditate"}, headers=alice_h
    ).json()["data"]["goal"]["id"]
    inv_id = client.post(
        f"{API}/collaboration-goals/{goal_id}/invitations",
        json={"recipient_ids": [bob]},
        headers=alice_h,
    ).json()["data"]["invitations"][0]["id"]

    r = client.delete(f"{API}/collaboration-goals/invitations/{inv_id}", headers=bob_h)
    assert r.status_code == 403

    r = client.delete(f"{API}/collaboration-goals/invitations/{inv_id}", headers=alice_h)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Invitation cancelled"}

    r = client.get(f"{API}/collaboration-goals/invitations", headers=bob_h)
    assert r.json()["data"]["invitations"] == []


def test_invitation_validation(client):
    alice, alice_h = _register(client, "alice")
    goal_id = client.post(
        f"{API}/collaboration-goals", json={"title": "Walk"}, headers=alice_h
    ).json()["data"]["goal"]["id"]

    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/invitations",
        json={"recipient_ids": []},
        headers=alice_h,
    )
    assert r.status_code == 422

    stranger, _ = _register(client, "stranger")
    r = client.post(
        f"{API}/collaboration-goals/{goal_id}/invitations",
        json={"recipient_ids": [stranger]},
        headers=alice_h,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "You can only invite your friends"
