"""
Wallet, Admin and Error Envelope Tests.
"""

from datetime import timedelta

import pytest
from jose import jwt
from sqlalchemy import update

from backend.app.core.config import settings
from backend.app.core.jwt import issue_token
from backend.app.models.enums import UserRole
from backend.app.models.user import User
from backend.tests.helpers import auth_headers


async def _paid_appointment(client, fan, star, slot, price=40, approve=True):
    appointment = (await client.post(
        "/v1/appointments",
        json={"star_id": star.id, "time_slot_id": slot.id, "price": price},
        headers=auth_headers(fan)
    )).json()
    if approve:
        await client.post(f"/v1/appointments/{appointment['id']}/approve", headers=auth_headers(star))
    return appointment


@pytest.mark.asyncio
async def test_balance_envelope(client, fan):
    response = await client.get("/v1/wallet/balance", headers=auth_headers(fan))

    assert response.status_code == 200
    assert response.json() == {"success": True, "user_id": fan.id, "balance": 100}


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client):
    response = await client.get("/v1/wallet/balance")
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_bad_token_is_rejected(client):
    response = await client.get("/v1/wallet/balance", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_UNAUTHORIZED"


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client, fan):
    token = issue_token(fan.id, expires_in=timedelta(seconds=-5))

    response = await client.get("/v1/wallet/balance", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_of_another_type_is_rejected(client, fan):
    token = jwt.encode(
        {"sub": str(fan.id), "typ": "refresh"}, settings.secret_key, algorithm=settings.algorithm
    )

    response = await client.get("/v1/wallet/balance", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_transaction_history_and_filters(client, fan, star, make_slots):
    morning, noon = await make_slots(star, "10:00-11:00", "11:00-12:00")
    await _paid_appointment(client, fan, star, morning, price=40, approve=True)
    await _paid_appointment(client, fan, star, noon, price=10, approve=False)

    everything = await client.get("/v1/wallet/transactions", headers=auth_headers(fan))
    pending = await client.get("/v1/wallet/transactions", params={"status": "PENDING"}, headers=auth_headers(fan))
    received = await client.get("/v1/wallet/transactions", headers=auth_headers(star))

    assert everything.json()["success"] is True
    assert len(everything.json()["transactions"]) == 2
    assert [t["amount"] for t in pending.json()["transactions"]] == [10]
    assert len(received.json()["transactions"]) == 2


@pytest.mark.asyncio
async def test_strangers_cannot_read_a_transaction(client, fan, star, make_user, slot):
    stranger = await make_user()
    appointment = await _paid_appointment(client, fan, star, slot)

    response = await client.get(
        f"/v1/wallet/transactions/{appointment['transaction_id']}", headers=auth_headers(stranger)
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_admin_refund(client, admin, fan, star, slot):
    appointment = await _paid_appointment(client, fan, star, slot, price=40)

    response = await client.post(
        f"/v1/admin/transactions/{appointment['transaction_id']}/refund", headers=auth_headers(admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["transaction"]["status"] == "REFUNDED"

    fan_balance = await client.get("/v1/wallet/balance", headers=auth_headers(fan))
    star_balance = await client.get("/v1/wallet/balance", headers=auth_headers(star))
    assert fan_balance.json()["balance"] == 100
    assert star_balance.json()["balance"] == 0

    notifications = await client.get("/v1/notifications", headers=auth_headers(fan))
    assert "Payment refunded" in [n["title"] for n in notifications.json()]


@pytest.mark.asyncio
async def test_refunding_an_appointment_voids_it_and_frees_the_slot(client, admin, fan, star, slot):
    appointment = await _paid_appointment(client, fan, star, slot, price=40)

    response = await client.post(
        f"/v1/admin/transactions/{appointment['transaction_id']}/refund", headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["booking"] == {"type": "Appointment", "id": appointment["id"], "status": "REFUNDED"}
    assert response.json()["report"] is None

    detail = (await client.get(f"/v1/appointments/{appointment['id']}", headers=auth_headers(fan))).json()
    assert detail["status"] == "REFUNDED"
    assert detail["refunded_at"] is not None

    day = (await client.get(f"/v1/availabilities/{slot.availability_id}", headers=auth_headers(fan))).json()
    assert [s["status"] for s in day["time_slots"]] == ["AVAILABLE"]

    again = await client.post(f"/v1/appointments/{appointment['id']}/cancel", headers=auth_headers(fan))
    assert again.status_code == 409
    assert again.json()["error_code"] == "ERR_BOOKING_001"


@pytest.mark.asyncio
async def test_refund_of_pending_transaction_conflicts(client, admin, fan, star, slot):
    appointment = await _paid_appointment(client, fan, star, slot, approve=False)

    response = await client.post(
        f"/v1/admin/transactions/{appointment['transaction_id']}/refund", headers=auth_headers(admin)
    )

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error_code": "ERR_LEDGER_006",
        "message": "Transaction is not in completed status",
        "details": {
            "transaction_id": appointment["transaction_id"],
            "current": "PENDING",
            "expected": "COMPLETED",
        },
    }


@pytest.mark.asyncio
async def test_refund_is_admin_only(client, fan, star, slot):
    appointment = await _paid_appointment(client, fan, star, slot)
    response = await client.post(
        f"/v1/admin/transactions/{appointment['transaction_id']}/refund", headers=auth_headers(star)
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unknown_transaction(client, admin):
    response = await client.post("/v1/admin/transactions/999/refund", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_LEDGER_005"


@pytest.mark.asyncio
async def test_validation_errors_use_the_envelope(client, fan, star):
    response = await client.post(
        "/v1/appointments",
        json={"star_id": star.id, "time_slot_id": "not-a-slot"},
        headers=auth_headers(fan)
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"
    assert response.json()["success"] is False


# Admin user management

@pytest.mark.asyncio
async def test_admin_provisions_user_with_welcome_coins(client, admin):
    response = await client.post(
        "/v1/admin/users",
        json={"email": "new.fan@starbooking.com", "name": "New Fan", "role": "FAN"},
        headers=auth_headers(admin)
    )

    assert response.status_code == 201
    assert response.json()["wallet_balance"] == 1000

    duplicate = await client.post(
        "/v1/admin/users",
        json={"email": "new.fan@starbooking.com", "name": "Again", "role": "FAN"},
        headers=auth_headers(admin)
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error_code"] == "ERR_CONFLICT_001"


@pytest.mark.asyncio
async def test_admin_lists_users_by_role(client, admin, fan, star):
    response = await client.get("/v1/admin/users", params={"role": "STAR"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert [u["id"] for u in response.json()["users"]] == [star.id]


@pytest.mark.asyncio
async def test_admin_reads_user_ledger(client, admin, fan, star, slot):
    await _paid_appointment(client, fan, star, slot, price=40)

    response = await client.get(f"/v1/admin/users/{fan.id}/ledger", headers=auth_headers(admin))

    assert response.status_code == 200
    entries = response.json()
    assert [(e["entry_type"], e["amount"], e["reason"]) for e in entries] == [("DEBIT", 40, "escrow")]


@pytest.mark.asyncio
async def test_blocked_user_is_refused_until_unblocked(client, admin, fan):
    blocked = await client.post(
        f"/v1/admin/users/{fan.id}/block", json={"reason": "chargeback"}, headers=auth_headers(admin)
    )
    refused = await client.get("/v1/wallet/balance", headers=auth_headers(fan))
    unblocked = await client.post(f"/v1/admin/users/{fan.id}/unblock", headers=auth_headers(admin))
    allowed = await client.get("/v1/wallet/balance", headers=auth_headers(fan))

    assert blocked.status_code == 200
    assert blocked.json()["user"]["is_active"] is False
    assert refused.status_code == 403
    assert unblocked.json()["user"]["is_active"] is True
    assert allowed.json()["balance"] == 100


@pytest.mark.asyncio
async def test_block_rules(client, admin, make_user, fan):
    other_admin = await make_user(UserRole.ADMIN, balance=0)

    own = await client.post(f"/v1/admin/users/{admin.id}/block", headers=auth_headers(admin))
    peer = await client.post(f"/v1/admin/users/{other_admin.id}/block", headers=auth_headers(admin))
    missing = await client.post("/v1/admin/users/9999/block", headers=auth_headers(admin))
    not_blocked = await client.post(f"/v1/admin/users/{fan.id}/unblock", headers=auth_headers(admin))

    assert own.status_code == 400
    assert own.json()["error_code"] == "ERR_ACCOUNT_001"
    assert peer.status_code == 403
    assert missing.status_code == 404
    assert not_blocked.status_code == 400
    assert not_blocked.json()["message"] == "User is already active"


@pytest.mark.asyncio
async def test_user_admin_is_admin_only(client, fan):
    response = await client.get("/v1/admin/users", headers=auth_headers(fan))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_mark_notification_read(client, fan, star, slot):
    await _paid_appointment(client, fan, star, slot, approve=True)
    notifications = (await client.get("/v1/notifications", headers=auth_headers(fan))).json()

    response = await client.patch(f"/v1/notifications/{notifications[0]['id']}/read", headers=auth_headers(fan))
    unread = await client.get("/v1/notifications", params={"unread_only": True}, headers=auth_headers(fan))

    assert response.json() == {"success": True}
    assert unread.json() == []


@pytest.mark.asyncio
async def test_inactive_user_is_refused(client, db_session, make_user):
    user = await make_user(UserRole.FAN)
    await db_session.execute(update(User).where(User.id == user.id).values(is_active=False))
    await db_session.commit()

    response = await client.get("/v1/wallet/balance", headers=auth_headers(user))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_health_pings_database(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["database"] == "ok"
    assert response.headers["X-Correlation-ID"]
