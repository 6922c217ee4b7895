"""Tests for the /api/messages HTTP endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

from fastapi import BackgroundTasks

from parley.messaging.events import Event
from parley.server.routes.messages import _dispatch


def _send(client, sender, receiver, content="hi", **kwargs):
    return client.post(
        "/api/messages",
        data={"receiver": receiver["id"], "content": content},
        headers=sender["headers"],
        **kwargs,
    )


class TestSend:
    def test_send_message(self, client, registered_pair):
        alice, bob = registered_pair
        resp = _send(client, alice, bob, "hello bob")
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Message sent successfully"
        data = body["data"]
        assert data["content"] == "hello bob"
        assert data["sender"]["id"] == alice["id"]
        assert data["sender"]["name"] == "Alice"
        assert data["receiver"]["id"] == bob["id"]
        assert data["messageType"] == "text"
        assert data["isRead"] is False
        assert data["readAt"] is None
        assert data["attachments"] == []

    def test_send_requires_auth(self, client, registered_pair):
        _, bob = registered_pair
        resp = client.post("/api/messages", data={"receiver": bob["id"], "content": "hi"})
        assert resp.status_code in (401, 403)

    def test_send_with_bad_token(self, client, registered_pair):
        _, bob = registered_pair
        resp = client.post(
            "/api/messages",
            data={"receiver": bob["id"], "content": "hi"},
            headers={"Authorization": "Bearer nope"},
        )
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": "unauthorized",
            "message": "Invalid token",
        }

    def test_send_to_self(self, client, registered_user):
        resp = _send(client, registered_user, registered_user)
        assert resp.status_code == 400
        assert resp.json()["error"] == "invalid_operation"
        assert resp.json()["message"] == "Cannot send message to yourself"

    def test_send_missing_receiver(self, client, registered_user):
        resp = client.post(
            "/api/messages", data={"content": "hi"}, headers=registered_user["headers"]
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Receiver ID is required"

    def test_send_unknown_receiver(self, client, registered_user):
        resp = _send(client, registered_user, {"id": "ghost"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_send_blank_content(self, client, registered_pair):
        alice, bob = registered_pair
        resp = _send(client, alice, bob, "   ")
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_send_too_long(self, client, registered_pair):
        alice, bob = registered_pair
        assert _send(client, alice, bob, "x" * 1001).status_code == 400

    def test_send_with_attachments(self, client, app, registered_pair):
        alice, bob = registered_pair
        resp = _send(
            client,
            alice,
            bob,
            "photos",
            files=[
                ("attachments", ("cat.png", b"\x89PNGdata", "image/png")),
                ("attachments", ("doc.pdf", b"%PDF-1.4", "application/pdf")),
            ],
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        assert data["messageType"] == "file"
        assert [a["originalName"] for a in data["attachments"]] == ["cat.png", "doc.pdf"]

        stored = Path(app.state.settings.upload_dir) / data["attachments"][0]["filename"]
        assert stored.read_bytes() == b"\x89PNGdata"

        served = client.get(data["attachments"][0]["url"])
        assert served.status_code == 200
        assert served.content == b"\x89PNGdata"

    def test_send_rejects_bad_attachment(self, client, app, registered_pair):
        alice, bob = registered_pair
        resp = _send(
            client,
            alice,
            bob,
            "virus",
            files=[
                ("attachments", ("ok.png", b"png", "image/png")),
                ("attachments", ("bad.exe", b"MZ", "application/octet-stream")),
            ],
        )
        assert resp.status_code == 400
        assert "Invalid file type" in resp.json()["message"]
        assert list(Path(app.state.settings.upload_dir).iterdir()) == []

        convo = client.get(f"/api/messages/conversation/{bob['id']}", headers=alice["headers"])
        assert convo.json()["data"]["messages"] == []


class TestConversations:
    def test_get_conversation_marks_read(self, client, registered_pair):
        alice, bob = registered_pair
        _send(client, alice, bob, "one")
        _send(client, alice, bob, "two")

        unread = client.get("/api/messages/unread-count", headers=bob["headers"])
        assert unread.json() == {"success": True, "data": {"unreadCount": 2}}

        resp = client.get(f"/api/messages/conversation/{alice['id']}", headers=bob["headers"])
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [m["content"] for m in data["messages"]] == ["one", "two"]
        assert all(m["isRead"] for m in data["messages"])
        assert data["otherUser"]["id"] == alice["id"]
        assert data["pagination"] == {"page": 1, "limit": 50, "total": 2, "pages": 1}

        unread = client.get("/api/messages/unread-count", headers=bob["headers"])
        assert unread.json()["data"]["unreadCount"] == 0

    def test_conversation_pagination(self, client, registered_pair):
        alice, bob = registered_pair
        for i in range(3):
            _send(client, alice, bob, f"m{i}")
        resp = client.get(
            f"/api/messages/conversation/{bob['id']}",
            params={"page": 2, "limit": 2},
            headers=alice["headers"],
        )
        data = resp.json()["data"]
        assert [m["content"] for m in data["messages"]] == ["m0"]
        assert data["pagination"]["pages"] == 2

    def test_conversation_invalid_page(self, client, registered_pair):
        alice, bob = registered_pair
        resp = client.get(
            f"/api/messages/conversation/{bob['id']}",
            params={"page": 0},
            headers=alice["headers"],
        )
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"

    def test_conversation_unknown_user(self, client, registered_user):
        resp = client.get(
            "/api/messages/conversation/ghost", headers=registered_user["headers"]
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "User not found"

    def test_list_conversations(self, client, registered_pair):
        alice, bob = registered_pair
        _send(client, alice, bob, "hi")
        _send(client, bob, alice, "hello")

        resp = client.get("/api/messages/conversations", headers=alice["headers"])
        assert resp.status_code == 200
        (row,) = resp.json()["data"]
        assert row["peer"]["id"] == bob["id"]
        assert row["peer"]["name"] == "Bob"
        assert row["lastMessage"]["content"] == "hello"
        assert row["unreadCount"] == 1
        assert row["totalMessages"] == 2

    def test_list_conversations_empty(self, client, registered_user):
        resp = client.get("/api/messages/conversations", headers=registered_user["headers"])
        assert resp.json() == {"success": True, "data": []}


class TestMarkRead:
    def test_mark_read(self, client, registered_pair):
        alice, bob = registered_pair
        ids = [_send(client, alice, bob, f"m{i}").json()["data"]["id"] for i in range(2)]

        resp = client.put(
            "/api/messages/mark-read", json={"messageIds": ids}, headers=bob["headers"]
        )
        assert resp.status_code == 200
        assert resp.json()["modifiedCount"] == 2
        assert resp.json()["message"] == "Marked 2 messages as read"

        again = client.put(
            "/api/messages/mark-read", json={"messageIds": ids}, headers=bob["headers"]
        )
        assert again.json()["modifiedCount"] == 0

    def test_mark_read_requires_ids(self, client, registered_user):
        for body in ({}, {"messageIds": []}, {"messageIds": ["a"]}):
            resp = client.put(
                "/api/messages/mark-read", json=body, headers=registered_user["headers"]
            )
            assert resp.status_code == 400
            assert resp.json()["message"] == "Message IDs array is required"


class TestDelete:
    def test_sender_deletes(self, client, registered_pair):
        alice, bob = registered_pair
        msg_id = _send(client, alice, bob).json()["data"]["id"]

        resp = client.delete(f"/api/messages/{msg_id}", headers=alice["headers"])
        assert resp.status_code == 200
        assert resp.json()["message"] == "Message deleted successfully"
        assert resp.json()["data"]["id"] == msg_id

        convo = client.get(f"/api/messages/conversation/{bob['id']}", headers=alice["headers"])
        assert convo.json()["data"]["messages"] == []

    def test_receiver_cannot_delete(self, client, registered_pair):
        alice, bob = registered_pair
        msg_id = _send(client, alice, bob, "keep").json()["data"]["id"]

        resp = client.delete(f"/api/messages/{msg_id}", headers=bob["headers"])
        assert resp.status_code == 404
        assert resp.json()["message"] == (
            "Message not found or you are not authorized to delete this message"
        )

        convo = client.get(f"/api/messages/conversation/{alice['id']}", headers=bob["headers"])
        assert [m["content"] for m in convo.json()["data"]["messages"]] == ["keep"]

    def test_delete_missing(self, client, registered_user):
        resp = client.delete("/api/messages/999", headers=registered_user["headers"])
        assert resp.status_code == 404


class TestTyping:
    def test_typing(self, client, registered_pair):
        alice, bob = registered_pair
        resp = client.post(
            "/api/messages/typing",
            json={"receiverId": bob["id"], "isTyping": True},
            headers=alice["headers"],
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Typing indicator sent"}

        stopped = client.post(
            "/api/messages/typing",
            json={"receiverId": bob["id"], "isTyping": False},
            headers=alice["headers"],
        )
        assert stopped.json()["message"] == "Typing indicator stopped"

    def test_typing_requires_receiver(self, client, registered_user):
        resp = client.post(
            "/api/messages/typing", json={"isTyping": True}, headers=registered_user["headers"]
        )
        assert resp.status_code == 400


class TestTimestamps:
    def test_timestamps_carry_utc_offset(self, client, registered_pair):
        alice, bob = registered_pair
        data = _send(client, alice, bob).json()["data"]
        for key in ("createdAt", "updatedAt"):
            stamp = datetime.fromisoformat(data[key].replace("Z", "+00:00"))
            assert stamp.utcoffset() == timedelta(0)


class _RecordingDispatcher:
    def __init__(self):
        self.calls = []

    async def dispatch(self, events):
        self.calls.append(events)


class TestEventDispatch:
    async def test_dispatch_is_deferred_to_background(self):
        dispatcher = _RecordingDispatcher()
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(dispatcher=dispatcher)))
        tasks = BackgroundTasks()
        events = [Event("receive_message", "bob", {"id": 1})]

        _dispatch(request, tasks, events)
        assert dispatcher.calls == []

        await tasks()
        assert dispatcher.calls == [events]

    async def test_no_events_schedules_nothing(self):
        dispatcher = _RecordingDispatcher()
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(dispatcher=dispatcher)))
        tasks = BackgroundTasks()
        _dispatch(request, tasks, [])
        assert tasks.tasks == []

    def test_events_delivered_after_send(self, client, app, registered_pair):
        alice, bob = registered_pair
        dispatcher = _RecordingDispatcher()
        app.state.dispatcher = dispatcher

        resp = _send(client, alice, bob, "later")
        assert resp.status_code == 201

        (events,) = dispatcher.calls
        assert {event.recipient for event in events} == {alice["id"], bob["id"]}
