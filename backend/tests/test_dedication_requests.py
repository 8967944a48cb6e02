"""
Dedication Request API Tests.
"""

import pytest

from backend.app.core.config import settings
from backend.tests.helpers import auth_headers

BASE = "/v1/dedication-requests"


async def _balance(client, user) -> int:
    response = await client.get("/v1/wallet/balance", headers=auth_headers(user))
    return response.json()["balance"]


async def _request(client, fan, star, price=50):
    response = await client.post(
        BASE,
        json={
            "star_id": star.id,
            "occasion": "Birthday",
            "event_name": "Sam turns 30",
            "event_date": "2026-12-24",
            "description": "Please wish Sam a happy birthday",
            "price": price,
        },
        headers=auth_headers(fan)
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_request_escrows_and_gets_tracking_id(client, fan, star):
    request = await _request(client, fan, star, price=50)

    assert request["status"] == "PENDING"
    assert request["tracking_id"].startswith("DR")
    assert await _balance(client, fan) == 50


@pytest.mark.asyncio
async def test_tracking_lookup_is_public(client, fan, star):
    request = await _request(client, fan, star)

    response = await client.get(f"{BASE}/tracking/{request['tracking_id']}")

    assert response.status_code == 200
    assert response.json()["id"] == request["id"]


@pytest.mark.asyncio
async def test_unknown_tracking_id(client):
    response = await client.get(f"{BASE}/tracking/DR00000000")
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_approval_keeps_coins_in_escrow(client, fan, star):
    request = await _request(client, fan, star, price=50)

    response = await client.post(f"{BASE}/{request['id']}/approve", headers=auth_headers(star))

    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert await _balance(client, fan) == 50
    assert await _balance(client, star) == 0


@pytest.mark.asyncio
async def test_delivery_pays_the_star(client, fan, star):
    request = await _request(client, fan, star, price=50)
    await client.post(f"{BASE}/{request['id']}/approve", headers=auth_headers(star))

    response = await client.post(
        f"{BASE}/{request['id']}/deliver",
        json={"video_url": "https://cdn.example.com/v/abc.mp4"},
        headers=auth_headers(star)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "COMPLETED"
    assert data["video_url"] == "https://cdn.example.com/v/abc.mp4"
    assert data["completed_at"] is not None
    assert await _balance(client, star) == 50
    assert await _balance(client, fan) == 50


@pytest.mark.asyncio
async def test_delivery_requires_approval(client, fan, star):
    request = await _request(client, fan, star, price=50)

    response = await client.post(
        f"{BASE}/{request['id']}/deliver",
        json={"video_url": "https://cdn.example.com/v/abc.mp4"},
        headers=auth_headers(star)
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BOOKING_001"
    assert await _balance(client, star) == 0


@pytest.mark.asyncio
async def test_reject_returns_coins(client, fan, star):
    request = await _request(client, fan, star, price=50)

    response = await client.post(f"{BASE}/{request['id']}/reject", headers=auth_headers(star))

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_fan_cancel_returns_coins(client, fan, star):
    request = await _request(client, fan, star, price=50)

    response = await client.post(f"{BASE}/{request['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_approved_request_can_no_longer_be_cancelled(client, fan, star):
    request = await _request(client, fan, star, price=50)
    await client.post(f"{BASE}/{request['id']}/approve", headers=auth_headers(star))

    response = await client.post(f"{BASE}/{request['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 409
    assert await _balance(client, fan) == 50


@pytest.mark.asyncio
async def test_fan_cannot_deliver(client, fan, star):
    request = await _request(client, fan, star, price=50)
    response = await client.post(
        f"{BASE}/{request['id']}/deliver",
        json={"video_url": "https://cdn.example.com/v/abc.mp4"},
        headers=auth_headers(fan)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_filters_by_status(client, fan, star):
    first = await _request(client, fan, star, price=10)
    await _request(client, fan, star, price=10)
    await client.post(f"{BASE}/{first['id']}/approve", headers=auth_headers(star))

    response = await client.get(BASE, params={"status": "APPROVED"}, headers=auth_headers(star))

    assert [r["id"] for r in response.json()] == [first["id"]]


@pytest.mark.asyncio
async def test_refunding_a_delivered_dedication_voids_it(client, admin, fan, star):
    request = await _request(client, fan, star, price=50)
    await client.post(f"{BASE}/{request['id']}/approve", headers=auth_headers(star))
    await client.post(
        f"{BASE}/{request['id']}/deliver",
        json={"video_url": "https://cdn.example.com/v/abc.mp4"},
        headers=auth_headers(star)
    )

    response = await client.post(
        f"/v1/admin/transactions/{request['transaction_id']}/refund", headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["booking"] == {"type": "DedicationRequest", "id": request["id"], "status": "REFUNDED"}

    detail = (await client.get(f"{BASE}/{request['id']}", headers=auth_headers(fan))).json()
    assert detail["status"] == "REFUNDED"
    assert detail["refunded_at"] is not None
    assert detail["completed_at"] is not None
    assert await _balance(client, fan) == 100
    assert await _balance(client, star) == 0

    completed = await client.get(BASE, params={"status": "COMPLETED"}, headers=auth_headers(star))
    assert completed.json() == []


@pytest.mark.asyncio
async def test_refused_refund_leaves_the_dedication_delivered(client, admin, fan, star, monkeypatch):
    monkeypatch.setattr(settings, "allow_negative_refund", False)
    request = await _request(client, fan, star, price=50)
    await client.post(f"{BASE}/{request['id']}/approve", headers=auth_headers(star))
    await client.post(
        f"{BASE}/{request['id']}/deliver",
        json={"video_url": "https://cdn.example.com/v/abc.mp4"},
        headers=auth_headers(star)
    )
    spent = await client.post(
        "/v1/live-shows",
        json={"session_title": "Thanks", "date": "2026-11-20", "time": "19:00", "hosting_price": 30},
        headers=auth_headers(star)
    )
    assert spent.status_code == 201

    response = await client.post(
        f"/v1/admin/transactions/{request['transaction_id']}/refund", headers=auth_headers(admin)
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_LEDGER_004"
    detail = (await client.get(f"{BASE}/{request['id']}", headers=auth_headers(fan))).json()
    assert detail["status"] == "COMPLETED"
    assert detail["refunded_at"] is None
    assert await _balance(client, fan) == 50
    assert await _balance(client, star) == 20
