"""
Integration tests for responses to requests

Tests cover:
- Posting responses and the request's response count
- Visibility of private and public responses
- The owner's accept/reject decision
"""
import pytest

from models.enums import Role, UserStatus
from tests.conftest import auth_headers


@pytest.fixture
def users(create_user):
    return {
        "owner": create_user("owner"),
        "helper": create_user("helper"),
        "other": create_user("other"),
        "admin": create_user("admin", role=Role.ADMIN),
    }


def _headers(users, name):
    role = Role.ADMIN if name == "admin" else Role.NORMAL
    return auth_headers(users[name], role)


@pytest.fixture
def request_id(client, users):
    response = client.post(
        "/api/requests",
        json={"title": "求一个写实风格的提示词", "content": "用于人像", "budget": "50"},
        headers=_headers(users, "owner"),
    )
    assert response.status_code == 200, response.text
    return response.json()["id"]


def _respond(client, users, request_id, who="helper", is_public=False, content="我可以帮忙"):
    return client.post(
        f"/api/requests/{request_id}/responses",
        json={"content": content, "price": "30", "isPublic": is_public},
        headers=_headers(users, who),
    )


def test_create_response_counts_on_request(client, users, request_id):
    response = _respond(client, users, request_id)
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["price"] == 30.0
    assert data["user"]["username"] == "helper"

    assert client.get(f"/api/requests/{request_id}").json()["responseCount"] == 1


def test_create_response_rules(client, users, request_id, create_user):
    assert client.post(f"/api/requests/{request_id}/responses", json={"content": "x"}).status_code == 401

    own = _respond(client, users, request_id, who="owner")
    assert own.status_code == 400
    assert own.json()["detail"] == "不能回复自己的需求"

    muted = auth_headers(create_user("muted", status=UserStatus.MUTED))
    blocked = client.post(f"/api/requests/{request_id}/responses", json={"content": "x"}, headers=muted)
    assert blocked.status_code == 403

    assert _respond(client, users, 9999).status_code == 404

    client.post("/api/admin/sensitive-words", json={"word": "违禁词"}, headers=_headers(users, "admin"))
    assert _respond(client, users, request_id, content="违禁词").status_code == 400


def test_response_visibility(client, users, request_id):
    private = _respond(client, users, request_id).json()
    public = _respond(client, users, request_id, who="other", is_public=True).json()
    url = f"/api/requests/{request_id}/responses"

    assert [r["id"] for r in client.get(url).json()] == [public["id"]]
    assert {r["id"] for r in client.get(url, headers=_headers(users, "owner")).json()} == {private["id"], public["id"]}
    assert {r["id"] for r in client.get(url, headers=_headers(users, "helper")).json()} == {private["id"], public["id"]}
    assert len(client.get(url, headers=_headers(users, "admin")).json()) == 2

    detail_url = f"/api/requests/responses/{private['id']}"
    assert client.get(detail_url, headers=_headers(users, "other")).status_code == 403
    detail = client.get(detail_url, headers=_headers(users, "owner")).json()
    assert detail["request"]["id"] == request_id
    assert client.get(f"/api/requests/responses/{public['id']}", headers=_headers(users, "helper")).status_code == 200


def test_owner_accepts_response(client, users, request_id):
    response = _respond(client, users, request_id).json()
    url = f"/api/requests/responses/{response['id']}/status"

    forbidden = client.patch(url, json={"status": "ACCEPTED"}, headers=_headers(users, "helper"))
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"] == "没有权限更新此响应状态"

    accepted = client.patch(url, json={"status": "ACCEPTED"}, headers=_headers(users, "owner")).json()
    assert accepted["status"] == "ACCEPTED"
    assert accepted["request"]["progress"] == "IN_PROGRESS"
    assert client.get(f"/api/requests/{request_id}").json()["progress"] == "IN_PROGRESS"

    assert client.patch(url, json={"status": "UNKNOWN"}, headers=_headers(users, "owner")).status_code == 422


def test_my_responses(client, users, request_id):
    _respond(client, users, request_id)
    _respond(client, users, request_id, content="再补充一点")

    mine = client.get("/api/requests/user/my-responses?limit=1", headers=_headers(users, "helper")).json()
    assert mine["meta"]["total"] == 2
    assert mine["meta"]["totalPages"] == 2
    assert mine["responses"][0]["content"] == "再补充一点"
    assert mine["responses"][0]["request"]["title"] == "求一个写实风格的提示词"

    empty = client.get("/api/requests/user/my-responses", headers=_headers(users, "other")).json()
    assert empty["responses"] == []
