"""
MeMantra Backend — Chat API Tests
===================================

What:  End-to-end tests of /api/chat over HTTP against an in-memory SQLite
       database.

What we test:
    ✅ Starting a conversation: 201, then 200 "already exists" from either side
    ✅ Lost start race → 200 with the existing conversation
    ✅ Self-conversation → 400, unknown participant → 404
    ✅ Participant guard on every conversation and message route:
       missing → 404, outsider → 403
    ✅ Messages: oldest first, replies within the conversation only
    ✅ Inbox summary: last message, unread count, most recent first
    ✅ Mark as read only touches the other user's messages
    ✅ Reactions toggle on and off and are grouped by emoji
    ✅ Deleting a conversation cascades to messages and reactions
"""

from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.conversation import Conversation
from app.models.message import Message, MessageReaction


async def _start(client, headers, participant_id):
    response = await client.post(
        "/api/chat/conversations", json={"participant_id": participant_id}, headers=headers
    )
    assert response.status_code in (200, 201), response.text
    return response.json()["data"]["conversation"]


async def _send(client, headers, conversation_id, content, reply_to=None):
    body = {"conversation_id": conversation_id, "content": content}
    if reply_to is not None:
        body["reply_to_message_id"] = reply_to
    response = await client.post("/api/chat/messages", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["message"]


class TestConversations:

    @pytest.mark.asyncio
    async def test_start_is_idempotent_from_either_side(self, client, make_user, count_rows):
        alice, alice_headers = await make_user()
        bob, bob_headers = await make_user()

        first = await client.post(
            "/api/chat/conversations", json={"participant_id": bob.user_id}, headers=alice_headers
        )
        second = await client.post(
            "/api/chat/conversations", json={"participant_id": alice.user_id}, headers=bob_headers
        )

        assert first.status_code == 201
        assert first.json()["message"] == "Conversation created successfully"
        assert second.status_code == 200
        assert second.json()["message"] == "Conversation already exists"
        conversation = first.json()["data"]["conversation"]
        assert second.json()["data"]["conversation"]["conversation_id"] == (
            conversation["conversation_id"]
        )
        assert (conversation["user1_id"], conversation["user2_id"]) == (
            alice.user_id,
            bob.user_id,
        )
        assert await count_rows(Conversation) == 1

    @pytest.mark.asyncio
    async def test_lost_start_race_returns_existing(self, client, make_user, count_rows):
        """
        Another request created the conversation after our pair lookup ran:
        the lookup is forced to miss while the row exists, so the insert hits
        the unique pair constraint. SQLite runs one request at a time, so two
        truly interleaved requests are not exercised here.
        """
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        existing = await _start(client, alice_headers, bob.user_id)

        real_scalar = AsyncSession.scalar
        calls = []

        async def miss_first_lookup(self, statement, *args, **kwargs):
            calls.append(statement)
            if len(calls) == 1:
                return None
            return await real_scalar(self, statement, *args, **kwargs)

        with patch.object(AsyncSession, "scalar", new=miss_first_lookup):
            response = await client.post(
                "/api/chat/conversations",
                json={"participant_id": bob.user_id},
                headers=alice_headers,
            )

        assert response.status_code == 200
        assert response.json()["message"] == "Conversation already exists"
        assert response.json()["data"]["conversation"]["conversation_id"] == (
            existing["conversation_id"]
        )
        assert len(calls) == 2
        assert await count_rows(Conversation) == 1

    @pytest.mark.asyncio
    async def test_cannot_start_with_yourself_or_a_stranger(self, client, make_user):
        me, headers = await make_user()

        yourself = await client.post(
            "/api/chat/conversations", json={"participant_id": me.user_id}, headers=headers
        )
        nobody = await client.post(
            "/api/chat/conversations", json={"participant_id": 9999}, headers=headers
        )

        assert yourself.status_code == 400
        assert yourself.json() == {
            "status": "error",
            "message": "Cannot create conversation with yourself",
        }
        assert nobody.status_code == 404
        assert nobody.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_chat_users_excludes_the_caller(self, client, make_user):
        me, headers = await make_user(username="zed")
        other, _ = await make_user(username="amy")

        response = await client.get("/api/chat/users", headers=headers)

        users = response.json()["data"]["users"]
        assert [u["user_id"] for u in users] == [other.user_id]
        assert set(users[0]) == {"user_id", "username", "email", "created_at"}

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        response = await client.get("/api/chat/conversations")

        assert response.status_code == 401
        assert response.json() == {"status": "error", "message": "Authentication required"}


class TestParticipantGuard:

    @pytest.mark.asyncio
    async def test_outsider_is_forbidden_everywhere(self, client, make_user, count_rows):
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        _, eve_headers = await make_user()
        conversation = await _start(client, alice_headers, bob.user_id)
        cid = conversation["conversation_id"]
        message = await _send(client, alice_headers, cid, "hello")
        mid = message["message_id"]

        attempts = (
            ("GET", f"/api/chat/conversations/{cid}", None),
            ("GET", f"/api/chat/conversations/{cid}/messages", None),
            ("PATCH", f"/api/chat/conversations/{cid}/read", None),
            ("DELETE", f"/api/chat/conversations/{cid}", None),
            ("POST", "/api/chat/messages", {"conversation_id": cid, "content": "let me in"}),
            ("POST", f"/api/chat/messages/{mid}/reactions", {"emoji": "👀"}),
            ("GET", f"/api/chat/messages/{mid}/reactions", None),
        )
        for method, url, body in attempts:
            response = await client.request(method, url, json=body, headers=eve_headers)

            assert response.status_code == 403, (method, url)
            assert response.json() == {"status": "error", "message": "Access denied"}

        assert await count_rows(Message, conversation_id=cid) == 1
        assert await count_rows(MessageReaction) == 0
        assert await count_rows(Conversation, conversation_id=cid) == 1

    @pytest.mark.asyncio
    async def test_missing_is_not_found_before_forbidden(self, client, make_user):
        _, headers = await make_user()

        conversation = await client.get("/api/chat/conversations/9999", headers=headers)
        send = await client.post(
            "/api/chat/messages", json={"conversation_id": 9999, "content": "hi"}, headers=headers
        )
        react = await client.post(
            "/api/chat/messages/9999/reactions", json={"emoji": "👍"}, headers=headers
        )

        assert conversation.status_code == 404
        assert conversation.json()["message"] == "Conversation not found"
        assert send.status_code == 404
        assert react.status_code == 404
        assert react.json()["message"] == "Message not found"


class TestMessages:

    @pytest.mark.asyncio
    async def test_messages_oldest_first_and_replies(self, client, make_user):
        _, alice_headers = await make_user()
        bob, bob_headers = await make_user()
        cid = (await _start(client, alice_headers, bob.user_id))["conversation_id"]

        first = await _send(client, alice_headers, cid, "How are you?")
        reply = await _send(client, bob_headers, cid, "Calm today", reply_to=first["message_id"])

        response = await client.get(f"/api/chat/conversations/{cid}/messages", headers=bob_headers)

        messages = response.json()["data"]["messages"]
        assert [m["content"] for m in messages] == ["How are you?", "Calm today"]
        assert messages[1]["reply_to_message_id"] == first["message_id"]
        assert reply["read"] is False
        assert reply["sender_id"] == bob.user_id

    @pytest.mark.asyncio
    async def test_reply_must_stay_in_the_conversation(self, client, make_user):
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        carol, _ = await make_user()
        with_bob = (await _start(client, alice_headers, bob.user_id))["conversation_id"]
        with_carol = (await _start(client, alice_headers, carol.user_id))["conversation_id"]
        elsewhere = await _send(client, alice_headers, with_carol, "for carol")

        cross = await client.post(
            "/api/chat/messages",
            json={
                "conversation_id": with_bob,
                "content": "oops",
                "reply_to_message_id": elsewhere["message_id"],
            },
            headers=alice_headers,
        )
        missing = await client.post(
            "/api/chat/messages",
            json={"conversation_id": with_bob, "content": "oops", "reply_to_message_id": 9999},
            headers=alice_headers,
        )

        assert cross.status_code == 400
        assert cross.json()["message"] == (
            "Cannot reply to a message from a different conversation"
        )
        assert missing.status_code == 404
        assert missing.json()["message"] == "Message to reply to not found"

    @pytest.mark.asyncio
    async def test_content_bounds(self, client, make_user):
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        cid = (await _start(client, alice_headers, bob.user_id))["conversation_id"]

        for content in ("", "   ", "x" * 1001):
            response = await client.post(
                "/api/chat/messages",
                json={"conversation_id": cid, "content": content},
                headers=alice_headers,
            )

            assert response.status_code == 400
            assert response.json()["message"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_inbox_summary_and_mark_read(self, client, make_user):
        alice, alice_headers = await make_user()
        bob, bob_headers = await make_user()
        carol, carol_headers = await make_user()
        with_bob = (await _start(client, alice_headers, bob.user_id))["conversation_id"]
        with_carol = (await _start(client, alice_headers, carol.user_id))["conversation_id"]
        await _send(client, carol_headers, with_carol, "earlier")
        await _send(client, bob_headers, with_bob, "one")
        await _send(client, bob_headers, with_bob, "two")
        await _send(client, alice_headers, with_bob, "mine")

        inbox = await client.get("/api/chat/conversations", headers=alice_headers)

        conversations = inbox.json()["data"]["conversations"]
        assert [c["conversation_id"] for c in conversations] == [with_bob, with_carol]
        assert conversations[0]["participant_id"] == bob.user_id
        assert conversations[0]["participant_username"] == bob.username
        assert conversations[0]["last_message"] == "mine"
        assert conversations[0]["unread_count"] == 2
        assert conversations[1]["unread_count"] == 1

        marked = await client.patch(
            f"/api/chat/conversations/{with_bob}/read", headers=alice_headers
        )
        assert marked.json() == {"status": "success", "message": "Messages marked as read"}

        messages = await client.get(
            f"/api/chat/conversations/{with_bob}/messages", headers=alice_headers
        )
        read_flags = {m["content"]: m["read"] for m in messages.json()["data"]["messages"]}
        assert read_flags == {"one": True, "two": True, "mine": False}

        inbox = await client.get("/api/chat/conversations", headers=alice_headers)
        unread = {c["conversation_id"]: c["unread_count"] for c in inbox.json()["data"]["conversations"]}
        assert unread == {with_bob: 0, with_carol: 1}

    @pytest.mark.asyncio
    async def test_empty_conversation_in_inbox(self, client, make_user):
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        conversation = await _start(client, alice_headers, bob.user_id)

        inbox = await client.get("/api/chat/conversations", headers=alice_headers)

        (summary,) = inbox.json()["data"]["conversations"]
        assert summary["last_message"] == ""
        assert summary["unread_count"] == 0
        assert summary["last_message_time"] == summary["created_at"]
        assert summary["conversation_id"] == conversation["conversation_id"]


class TestReactions:

    @pytest.mark.asyncio
    async def test_toggle_and_group(self, client, make_user, count_rows):
        alice, alice_headers = await make_user()
        bob, bob_headers = await make_user()
        cid = (await _start(client, alice_headers, bob.user_id))["conversation_id"]
        mid = (await _send(client, alice_headers, cid, "Breathe"))["message_id"]
        url = f"/api/chat/messages/{mid}/reactions"

        added = await client.post(url, json={"emoji": "❤️"}, headers=bob_headers)
        await client.post(url, json={"emoji": "❤️"}, headers=alice_headers)
        await client.post(url, json={"emoji": "🙏"}, headers=bob_headers)

        assert added.status_code == 201
        assert added.json()["message"] == "Reaction added"
        assert added.json()["data"]["reaction"]["user_id"] == bob.user_id

        grouped = await client.get(url, headers=alice_headers)
        assert grouped.json()["data"]["reactions"] == [
            {"emoji": "❤️", "count": 2, "users": [bob.user_id, alice.user_id]},
            {"emoji": "🙏", "count": 1, "users": [bob.user_id]},
        ]

        removed = await client.post(url, json={"emoji": "❤️"}, headers=bob_headers)

        assert removed.status_code == 200
        assert removed.json() == {"status": "success", "message": "Reaction removed"}
        assert await count_rows(MessageReaction, message_id=mid, user_id=bob.user_id) == 1

    @pytest.mark.asyncio
    async def test_emoji_is_required(self, client, make_user):
        _, alice_headers = await make_user()
        bob, _ = await make_user()
        cid = (await _start(client, alice_headers, bob.user_id))["conversation_id"]
        mid = (await _send(client, alice_headers, cid, "hi"))["message_id"]

        for body in ({}, {"emoji": "  "}):
            response = await client.post(
                f"/api/chat/messages/{mid}/reactions", json=body, headers=alice_headers
            )

            assert response.status_code == 400


class TestDeleteConversation:

    @pytest.mark.asyncio
    async def test_delete_cascades_messages_and_reactions(self, client, make_user, count_rows):
        _, alice_headers = await make_user()
        bob, bob_headers = await make_user()
        cid = (await _start(client, alice_headers, bob.user_id))["conversation_id"]
        first = await _send(client, alice_headers, cid, "first")
        await _send(client, bob_headers, cid, "second", reply_to=first["message_id"])
        await client.post(
            f"/api/chat/messages/{first['message_id']}/reactions",
            json={"emoji": "👍"},
            headers=bob_headers,
        )

        response = await client.delete(f"/api/chat/conversations/{cid}", headers=bob_headers)
        again = await client.delete(f"/api/chat/conversations/{cid}", headers=bob_headers)

        assert response.status_code == 200
        assert response.json() == {
            "status": "success",
            "message": "Conversation deleted successfully",
        }
        assert await count_rows(Conversation, conversation_id=cid) == 0
        assert await count_rows(Message, conversation_id=cid) == 0
        assert await count_rows(MessageReaction) == 0
        assert again.status_code == 404
