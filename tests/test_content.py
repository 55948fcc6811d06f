"""
Integration tests for the shared content modules

Tests cover:
- Create / read / update / delete permissions and visibility rules
- Likes, favorites and per-user interaction lists
- Listing filters and ordering
- Sensitive word screening and admin moderation
- Creator scores driven by content activity
"""
from datetime import datetime, timedelta

import pytest

from crud.content import time_range_start
from models.enums import Role, UserStatus
from tests.conftest import auth_headers


@pytest.fixture
def users(create_user):
    return {
        "author": create_user("author"),
        "reader": create_user("reader"),
        "admin": create_user("admin", role=Role.ADMIN),
    }


def _headers(users, name):
    role = Role.ADMIN if name == "admin" else Role.NORMAL
    return auth_headers(users[name], role)


def _create_note(client, users, title="我的第一篇笔记", who="author"):
    response = client.post(
        "/api/notes",
        json={"title": title, "content": "正文内容", "coverImageUrl": "http://localhost:8000/uploads/covers/a.png"},
        headers=_headers(users, who),
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_create_and_get_note(client, users):
    note = _create_note(client, users)
    assert note["title"] == "我的第一篇笔记"
    assert note["coverImageUrl"].endswith("a.png")
    assert note["status"] == "VISIBLE"
    assert note["author"]["username"] == "author"
    assert "email" not in note["author"]

    detail = client.get(f"/api/notes/{note['id']}", headers=_headers(users, "reader")).json()
    assert detail["viewsCount"] == 1
    assert detail["isLiked"] is False
    assert detail["isFavorited"] is False

    anonymous = client.get(f"/api/notes/{note['id']}?incrementView=false").json()
    assert anonymous["viewsCount"] == 1


def test_create_requires_auth_and_active_account(client, users, create_user):
    assert client.post("/api/notes", json={"title": "x"}).status_code == 401

    muted_id = create_user("muted", status=UserStatus.MUTED)
    response = client.post("/api/notes", json={"title": "x"}, headers=auth_headers(muted_id))
    assert response.status_code == 403


def test_screenings_are_admin_only(client, users):
    payload = {"title": "首映", "videoUrl": "http://localhost:8000/uploads/screenings/v.mp4"}
    assert client.post("/api/screenings", json=payload, headers=_headers(users, "author")).status_code == 403
    assert client.post("/api/screenings", json=payload, headers=_headers(users, "admin")).status_code == 200


def test_update_permissions(client, users):
    note = _create_note(client, users)

    forbidden = client.put(f"/api/notes/{note['id']}", json={"title": "改标题"}, headers=_headers(users, "reader"))
    assert forbidden.status_code == 403

    updated = client.put(f"/api/notes/{note['id']}", json={"title": "改标题"}, headers=_headers(users, "author"))
    assert updated.status_code == 200
    assert updated.json()["title"] == "改标题"
    assert updated.json()["content"] == "正文内容"

    by_admin = client.put(f"/api/notes/{note['id']}", json={"content": "管理员修改"}, headers=_headers(users, "admin"))
    assert by_admin.json()["content"] == "管理员修改"


def test_owner_delete_hides_and_admin_delete_removes(client, users):
    note = _create_note(client, users)
    url = f"/api/notes/{note['id']}"

    assert client.delete(url, headers=_headers(users, "reader")).status_code == 403
    assert client.delete(url, headers=_headers(users, "author")).status_code == 200

    # Hidden: only the owner and admins can still see it
    assert client.get(url).status_code == 404
    assert client.get(url, headers=_headers(users, "reader")).status_code == 404
    assert client.get(url, headers=_headers(users, "author")).json()["status"] == "HIDDEN"
    assert client.get("/api/notes").json()["meta"]["total"] == 0

    assert client.delete(url, headers=_headers(users, "admin")).status_code == 200
    assert client.get(url, headers=_headers(users, "author")).status_code == 404
    assert client.get(url, headers=_headers(users, "admin")).status_code == 404


def test_like_and_favorite_toggle(client, users):
    note = _create_note(client, users)
    headers = _headers(users, "reader")

    liked = client.post(f"/api/notes/{note['id']}/like", headers=headers).json()
    assert liked == {"liked": True, "likesCount": 1}
    favorited = client.post(f"/api/notes/{note['id']}/favorite", headers=headers).json()
    assert favorited == {"favorited": True, "favoritesCount": 1}

    detail = client.get(f"/api/notes/{note['id']}", headers=headers).json()
    assert detail["isLiked"] is True
    assert detail["isFavorited"] is True

    likes = client.get("/api/users/me/likes?type=notes", headers=headers).json()
    assert [item["id"] for item in likes["items"]] == [note["id"]]
    favorites = client.get("/api/users/me/favorites?type=notes", headers=headers).json()
    assert favorites["meta"]["total"] == 1

    unliked = client.post(f"/api/notes/{note['id']}/like", headers=headers).json()
    assert unliked == {"liked": False, "likesCount": 0}
    assert client.get("/api/users/me/likes?type=notes", headers=headers).json()["items"] == []


def test_listing_filters_and_ordering(client, users):
    first = _create_note(client, users, title="提示词技巧")
    second = _create_note(client, users, title="模型对比")
    third = _create_note(client, users, title="更多提示词", who="reader")
    client.post(f"/api/notes/{second['id']}/like", headers=_headers(users, "reader"))

    latest = client.get("/api/notes").json()
    assert [i["id"] for i in latest["items"]] == [third["id"], second["id"], first["id"]]
    assert latest["meta"] == {"total": 3, "page": 1, "limit": 10, "totalPages": 1}

    oldest = client.get("/api/notes?orderBy=oldest").json()
    assert [i["id"] for i in oldest["items"]] == [first["id"], second["id"], third["id"]]

    popular = client.get("/api/notes?orderBy=popular").json()
    assert popular["items"][0]["id"] == second["id"]

    search = client.get("/api/notes?search=提示词").json()
    assert {i["id"] for i in search["items"]} == {first["id"], third["id"]}

    by_author = client.get(f"/api/notes?userId={users['reader']}").json()
    assert [i["id"] for i in by_author["items"]] == [third["id"]]

    paged = client.get("/api/notes?page=2&limit=2").json()
    assert len(paged["items"]) == 1
    assert paged["meta"]["totalPages"] == 2

    assert client.get("/api/notes?timeRange=week").json()["meta"]["total"] == 3


def test_time_range_start():
    now = datetime(2024, 6, 15, 13, 30)
    assert time_range_start("today", now) == datetime(2024, 6, 15)
    assert time_range_start("week", now) == now - timedelta(days=7)
    assert time_range_start(None, now) is None
    assert time_range_start("forever", now) is None


def test_sensitive_words_block_content(client, users):
    admin = _headers(users, "admin")
    added = client.post("/api/admin/sensitive-words", json={"word": "违禁词"}, headers=admin)
    assert added.status_code == 200
    assert client.post("/api/admin/sensitive-words", json={"word": "违禁词"}, headers=admin).status_code == 400

    response = client.post("/api/notes", json={"title": "包含违禁词的标题"}, headers=_headers(users, "author"))
    assert response.status_code == 400
    assert response.json()["detail"] == "内容包含敏感词：违禁词"

    note = _create_note(client, users)
    update = client.put(f"/api/notes/{note['id']}", json={"content": "违禁词"}, headers=_headers(users, "author"))
    assert update.status_code == 400

    client.delete(f"/api/admin/sensitive-words/{added.json()['id']}", headers=admin)
    assert client.get("/api/admin/sensitive-words", headers=admin).json() == []
    assert client.post("/api/notes", json={"title": "包含违禁词的标题"}, headers=_headers(users, "author")).status_code == 200


def test_admin_moderation(client, users):
    note = _create_note(client, users)
    client.delete(f"/api/notes/{note['id']}", headers=_headers(users, "author"))
    admin = _headers(users, "admin")

    listing = client.get("/api/admin/content/notes", headers=admin).json()
    assert listing["meta"]["total"] == 1
    assert listing["items"][0]["status"] == "HIDDEN"

    restored = client.put(f"/api/admin/content/notes/{note['id']}/status", json={"status": "VISIBLE"}, headers=admin)
    assert restored.json()["status"] == "VISIBLE"
    assert client.get(f"/api/notes/{note['id']}").status_code == 200

    assert client.get("/api/admin/content/notes", headers=_headers(users, "author")).status_code == 403
    assert client.get("/api/admin/content/unknown", headers=admin).status_code == 404


def test_creator_scores(client, users):
    note = _create_note(client, users)
    client.post(
        "/api/posts",
        json={"title": "视频作品", "type": "VIDEO", "mediaUrl": "http://localhost:8000/uploads/posts/v.mp4"},
        headers=_headers(users, "author"),
    )
    client.post(f"/api/notes/{note['id']}/like", headers=_headers(users, "reader"))
    client.post(f"/api/notes/{note['id']}/favorite", headers=_headers(users, "reader"))

    creators = client.get("/api/creators").json()
    top = creators[0]
    # note 100 + like 2 + favorite 5, video post 20
    assert top["userId"] == users["author"]
    assert top["score"] == 127
    assert client.get(f"/api/creators/{top['id']}").json()["score"] == 127

    recalculated = client.post("/api/admin/creators/recalculate", headers=_headers(users, "admin")).json()
    assert recalculated == {"success": True, "updated": 1}


def test_list_page_backs_every_listing(client, users):
    from crud.content import ContentRepository

    assert hasattr(ContentRepository, "list_page")
    _create_note(client, users)
    assert client.get("/api/notes").json()["meta"]["total"] == 1
    assert client.get("/api/requests").json()["meta"]["total"] == 0


def test_null_for_required_field_rejected(client, users):
    note = _create_note(client, users)
    url = f"/api/notes/{note['id']}"

    response = client.put(url, json={"title": None}, headers=_headers(users, "author"))
    assert response.status_code == 400
    assert response.json()["detail"] == "title 不能为空"

    # Optional columns can still be cleared
    cleared = client.put(url, json={"content": None}, headers=_headers(users, "author"))
    assert cleared.status_code == 200
    assert cleared.json()["content"] is None
    assert cleared.json()["title"] == "我的第一篇笔记"


def test_blank_sensitive_word_rejected(client, users):
    admin = _headers(users, "admin")
    response = client.post("/api/admin/sensitive-words", json={"word": "   "}, headers=admin)
    assert response.status_code == 400
    assert response.json()["detail"] == "敏感词不能为空"
    assert client.get("/api/admin/sensitive-words", headers=admin).json() == []

    _create_note(client, users, title="普通标题")


def test_categories(client, users):
    admin = _headers(users, "admin")
    assert client.post("/api/admin/note-categories", json={"name": "教程"}, headers=_headers(users, "author")).status_code == 403

    tutorial = client.post("/api/admin/note-categories", json={"name": "教程"}, headers=admin).json()
    assert tutorial["kind"] == "NOTE"
    assert client.post("/api/admin/note-categories", json={"name": "教程"}, headers=admin).status_code == 409
    # Names are unique per kind only
    assert client.post("/api/admin/request-categories", json={"name": "教程"}, headers=admin).status_code == 200

    assert [c["name"] for c in client.get("/api/note-categories").json()] == ["教程"]
    assert client.get(f"/api/note-categories/{tutorial['id']}").json()["name"] == "教程"
    assert client.get(f"/api/resource-categories/{tutorial['id']}").status_code == 404

    categorized = client.post(
        "/api/notes", json={"title": "分类笔记", "categoryId": tutorial["id"]}, headers=_headers(users, "author")
    ).json()
    assert categorized["categoryId"] == tutorial["id"]
    _create_note(client, users, title="未分类")
    missing = client.post("/api/notes", json={"title": "x", "categoryId": 9999}, headers=_headers(users, "author"))
    assert missing.status_code == 400
    assert missing.json()["detail"] == "ID为9999的分类不存在"

    filtered = client.get(f"/api/notes?categoryId={tutorial['id']}").json()
    assert [i["id"] for i in filtered["items"]] == [categorized["id"]]

    renamed = client.put(f"/api/admin/note-categories/{tutorial['id']}", json={"name": "入门教程"}, headers=admin)
    assert renamed.json()["name"] == "入门教程"

    in_use = client.delete(f"/api/admin/note-categories/{tutorial['id']}", headers=admin)
    assert in_use.status_code == 409
    assert in_use.json()["detail"] == "无法删除分类，还有 1 条内容正在使用此分类"

    client.put(f"/api/notes/{categorized['id']}", json={"categoryId": None}, headers=_headers(users, "author"))
    assert client.delete(f"/api/admin/note-categories/{tutorial['id']}", headers=admin).json() == {"success": True}
    assert client.get("/api/note-categories").json() == []
