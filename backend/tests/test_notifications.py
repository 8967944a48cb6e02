"""
Notification Inbox Tests.
"""

import pytest

from backend.app.models.notification import NotificationType
from backend.app.services.notification_service import NotificationService
from backend.tests.helpers import auth_headers


async def _seed_inbox(db, user):
    await NotificationService.notify(db, user.id, "Booked", "Your appointment is booked",
                                     type=NotificationType.APPOINTMENT_UPDATE)
    await NotificationService.notify(db, user.id, "Approved", "Your appointment was approved",
                                     type=NotificationType.APPOINTMENT_UPDATE)
    await NotificationService.notify(db, user.id, "Payment refunded", "40 coins returned",
                                     type=NotificationType.PAYMENT_UPDATE,
                                     metadata={"transaction_id": 7})


@pytest.mark.asyncio
async def test_list_filters_by_type(client, db_session, fan):
    await _seed_inbox(db_session, fan)

    response = await client.get(
        "/v1/notifications", params={"type": "PAYMENT_UPDATE"}, headers=auth_headers(fan)
    )

    assert response.status_code == 200
    body = response.json()
    assert [n["title"] for n in body] == ["Payment refunded"]
    assert body[0]["metadata_payload"] == {"transaction_id": 7}


@pytest.mark.asyncio
async def test_list_is_scoped_to_caller(client, db_session, fan, star):
    await _seed_inbox(db_session, fan)

    response = await client.get("/v1/notifications", headers=auth_headers(star))

    assert response.json() == []


@pytest.mark.asyncio
async def test_stats_count_by_type(client, db_session, fan):
    await _seed_inbox(db_session, fan)

    response = await client.get("/v1/notifications/stats", headers=auth_headers(fan))

    assert response.status_code == 200
    assert response.json() == {
        "total": 3,
        "unread": 3,
        "by_type": [
            {"type": "APPOINTMENT_UPDATE", "total": 2, "unread": 2},
            {"type": "PAYMENT_UPDATE", "total": 1, "unread": 1},
        ],
    }


@pytest.mark.asyncio
async def test_mark_all_read_for_one_type(client, db_session, fan):
    await _seed_inbox(db_session, fan)

    response = await client.patch(
        "/v1/notifications/read-all", params={"type": "APPOINTMENT_UPDATE"}, headers=auth_headers(fan)
    )
    stats = (await client.get("/v1/notifications/stats", headers=auth_headers(fan))).json()

    assert response.json() == {"success": True, "updated": 2}
    assert stats["unread"] == 1
    assert stats["total"] == 3


@pytest.mark.asyncio
async def test_mark_all_read_twice_updates_nothing(client, db_session, fan):
    await _seed_inbox(db_session, fan)

    await client.patch("/v1/notifications/read-all", headers=auth_headers(fan))
    again = await client.patch("/v1/notifications/read-all", headers=auth_headers(fan))

    assert again.json()["updated"] == 0


@pytest.mark.asyncio
async def test_delete_own_notification(client, db_session, fan):
    await _seed_inbox(db_session, fan)
    inbox = (await client.get("/v1/notifications", headers=auth_headers(fan))).json()

    response = await client.delete(f"/v1/notifications/{inbox[0]['id']}", headers=auth_headers(fan))
    remaining = (await client.get("/v1/notifications", headers=auth_headers(fan))).json()

    assert response.json() == {"success": True}
    assert len(remaining) == 2


@pytest.mark.asyncio
async def test_cannot_touch_another_users_notification(client, db_session, fan, star):
    await _seed_inbox(db_session, fan)
    inbox = (await client.get("/v1/notifications", headers=auth_headers(fan))).json()
    notification_id = inbox[0]["id"]

    deleted = await client.delete(f"/v1/notifications/{notification_id}", headers=auth_headers(star))
    read = await client.patch(f"/v1/notifications/{notification_id}/read", headers=auth_headers(star))

    assert deleted.status_code == 404
    assert read.status_code == 404
    assert deleted.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_pagination(db_session, fan):
    await _seed_inbox(db_session, fan)

    first_page = await NotificationService.list_for_user(db_session, fan.id, limit=2)
    second_page = await NotificationService.list_for_user(db_session, fan.id, limit=2, offset=2)

    assert len(first_page) == 2
    assert len(second_page) == 1
    assert {n.id for n in first_page}.isdisjoint({n.id for n in second_page})
