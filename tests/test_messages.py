"""
Integration tests for private messages between users
"""
import pytest

from tests.conftest import auth_headers


@pytest.fixture
def users(create_user):
    return {name: create_user(name) for name in ("alice", "bob", "carol")}


def _send(client, users, sender, receiver, content):
    return client.post(
        "/api/users/messages",
        json={"receiverId": users[receiver], "content": content},
        headers=auth_headers(users[sender]),
    )


def test_send_message_rules(client, users):
    assert client.post("/api/users/messages", json={"receiverId": users["bob"], "content": "hi"}).status_code == 401

    sent = _send(client, users, "alice", "bob", "你好")
    assert sent.status_code == 200, sent.text
    assert sent.json()["sender"]["nickname"] == "alice"
    assert sent.json()["read"] is False

    to_self = _send(client, users, "alice", "alice", "自言自语")
    assert to_self.status_code == 400
    assert to_self.json()["detail"] == "不能给自己发送消息"

    nobody = client.post(
        "/api/users/messages", json={"receiverId": 9999, "content": "hi"}, headers=auth_headers(users["alice"])
    )
    assert nobody.status_code == 404
    assert nobody.json()["detail"] == "接收者不存在"


def test_message_with_sensitive_word_rejected(client, users, create_user):
    from models.enums import Role

    admin = auth_headers(create_user("admin", role=Role.ADMIN), Role.ADMIN)
    client.post("/api/admin/sensitive-words", json={"word": "违禁词"}, headers=admin)

    response = _send(client, users, "alice", "bob", "这里有违禁词")
    assert response.status_code == 400
    assert response.json()["detail"] == "消息包含敏感词：违禁词"


def test_conversation_marks_messages_read(client, users):
    _send(client, users, "alice", "bob", "第一条")
    _send(client, users, "bob", "alice", "第二条")
    _send(client, users, "alice", "bob", "第三条")
    bob = auth_headers(users["bob"])

    assert client.get("/api/users/messages/unread-count", headers=bob).json() == {"count": 2}

    thread = client.get(f"/api/users/messages/with/{users['alice']}", headers=bob).json()
    assert [m["content"] for m in thread] == ["第一条", "第二条", "第三条"]
    assert client.get("/api/users/messages/unread-count", headers=bob).json() == {"count": 0}

    # Newest messages come first when paging, each page is oldest first
    latest = client.get(f"/api/users/messages/with/{users['alice']}?limit=2", headers=bob).json()
    assert [m["content"] for m in latest] == ["第二条", "第三条"]
    older = client.get(f"/api/users/messages/with/{users['alice']}?limit=2&offset=2", headers=bob).json()
    assert [m["content"] for m in older] == ["第一条"]

    assert client.get("/api/users/messages/with/9999", headers=bob).status_code == 404


def test_contacts_and_mark_read(client, users):
    _send(client, users, "bob", "alice", "来自 bob")
    _send(client, users, "carol", "alice", "来自 carol")
    _send(client, users, "carol", "alice", "carol 又来了")
    alice = auth_headers(users["alice"])

    contacts = client.get("/api/users/messages/contacts", headers=alice).json()
    assert [c["id"] for c in contacts] == [users["carol"], users["bob"]]
    assert contacts[0]["unreadCount"] == 2
    assert contacts[0]["lastMessage"] == {
        "content": "carol 又来了",
        "createdAt": contacts[0]["lastMessage"]["createdAt"],
        "isFromMe": False,
    }

    marked = client.patch(f"/api/users/messages/read/{users['carol']}", headers=alice)
    assert marked.json() == {"success": True}
    assert client.get("/api/users/messages/unread-count", headers=alice).json() == {"count": 1}

    _send(client, users, "alice", "bob", "回复 bob")
    contacts = client.get("/api/users/messages/contacts", headers=alice).json()
    assert contacts[0]["id"] == users["bob"]
    assert contacts[0]["lastMessage"]["isFromMe"] is True
    assert contacts[0]["unreadCount"] == 1
