"""
Tests for announcements: active window, per-day view tracking and admin CRUD
"""
from datetime import datetime, timedelta, date

import pytest

from database_models import Announcement
from models.enums import Role
from services.announcement_service import AnnouncementService
from tests.conftest import insert_user, auth_headers


def _announcement(title, priority=0, active=True, start_offset=-1, end_offset=1):
    now = datetime.utcnow()
    return Announcement(
        title=title,
        content=f"{title} 内容",
        priority=priority,
        is_active=active,
        start_date=now + timedelta(days=start_offset),
        end_date=now + timedelta(days=end_offset),
    )


@pytest.mark.asyncio
async def test_active_announcements_order_and_limit(test_db):
    test_db.add_all([
        _announcement("低", priority=1),
        _announcement("高", priority=9),
        _announcement("中", priority=5),
        _announcement("最低", priority=0),
        _announcement("已停用", priority=10, active=False),
        _announcement("未开始", priority=10, start_offset=1, end_offset=2),
        _announcement("已结束", priority=10, start_offset=-3, end_offset=-2),
    ])
    await test_db.flush()

    active = await AnnouncementService(test_db).get_active()
    assert [a["title"] for a in active] == ["高", "中", "低"]


@pytest.mark.asyncio
async def test_viewed_announcements_hidden_for_the_day(test_db):
    user = await insert_user(test_db, "viewer")
    first = _announcement("一", priority=2)
    second = _announcement("二", priority=1)
    test_db.add_all([first, second])
    await test_db.flush()
    service = AnnouncementService(test_db)
    today = date(2024, 6, 1)

    await service.mark_viewed(first.id, user.id, today)
    # Marking twice on the same day is a no-op
    await service.mark_viewed(first.id, user.id, today)

    assert [a["title"] for a in await service.get_active(user.id, today)] == ["二"]
    assert [a["title"] for a in await service.get_active(user.id, today + timedelta(days=1))] == ["一", "二"]
    assert len(await service.get_active()) == 2


def test_announcement_api(client, create_user):
    admin_id = create_user("admin", role=Role.ADMIN)
    user_id = create_user("reader")
    admin = auth_headers(admin_id, Role.ADMIN)
    now = datetime.utcnow()

    created = client.post(
        "/api/admin/announcements",
        json={
            "title": "系统维护",
            "content": "今晚维护",
            "priority": 3,
            "startDate": (now - timedelta(hours=1)).isoformat(),
            "endDate": (now + timedelta(days=1)).isoformat(),
        },
        headers=admin,
    )
    assert created.status_code == 200
    announcement_id = created.json()["id"]

    assert [a["id"] for a in client.get("/api/announcements/active").json()] == [announcement_id]

    viewed = client.post(f"/api/announcements/{announcement_id}/view", headers=auth_headers(user_id))
    assert viewed.json() == {"success": True}
    assert client.get("/api/announcements/active", headers=auth_headers(user_id)).json() == []

    assert client.get(f"/api/announcements/{announcement_id}").json()["title"] == "系统维护"

    updated = client.put(f"/api/admin/announcements/{announcement_id}", json={"isActive": False}, headers=admin)
    assert updated.json()["isActive"] is False
    assert client.get("/api/announcements/active").json() == []

    listing = client.get("/api/admin/announcements", headers=admin).json()
    assert listing["total"] == 1

    assert client.delete(f"/api/admin/announcements/{announcement_id}", headers=admin).status_code == 200
    assert client.get(f"/api/announcements/{announcement_id}").status_code == 404


def test_announcement_rejects_inverted_window(client, create_user):
    admin_id = create_user("admin", role=Role.ADMIN)
    now = datetime.utcnow()
    response = client.post(
        "/api/admin/announcements",
        json={
            "title": "错误",
            "content": "x",
            "startDate": now.isoformat(),
            "endDate": (now - timedelta(days=1)).isoformat(),
        },
        headers=auth_headers(admin_id, Role.ADMIN),
    )
    assert response.status_code == 400


def test_announcement_update_rejects_null_dates(client, create_user):
    admin = auth_headers(create_user("admin", role=Role.ADMIN), Role.ADMIN)
    now = datetime.utcnow()
    created = client.post(
        "/api/admin/announcements",
        json={
            "title": "活动",
            "content": "x",
            "startDate": now.isoformat(),
            "endDate": (now + timedelta(days=1)).isoformat(),
        },
        headers=admin,
    ).json()

    for field in ("startDate", "endDate"):
        response = client.put(f"/api/admin/announcements/{created['id']}", json={field: None}, headers=admin)
        assert response.status_code == 400
        assert response.json()["detail"] == f"{field} 不能为空"

    assert client.get(f"/api/announcements/{created['id']}").json()["startDate"] == created["startDate"]
