"""
Appointment API Tests.

Booking, approval, rejection, cancellation and reschedule through the HTTP
surface, with wallet balances checked after every step.
"""

import pytest

from backend.tests.helpers import auth_headers

BASE = "/v1/appointments"


async def _balance(client, user) -> int:
    response = await client.get("/v1/wallet/balance", headers=auth_headers(user))
    assert response.status_code == 200
    return response.json()["balance"]


async def _book(client, fan, star, slot, price=40, **extra):
    body = {"star_id": star.id, "time_slot_id": slot.id, "price": price}
    body.update(extra)
    return await client.post(BASE, json=body, headers=auth_headers(fan))


async def _slot_status(client, user, slot) -> str:
    response = await client.get(f"/v1/availabilities/{slot.availability_id}", headers=auth_headers(user))
    return next(s["status"] for s in response.json()["time_slots"] if s["id"] == slot.id)


@pytest.mark.asyncio
async def test_booking_escrows_fan_coins(client, fan, star, slot):
    response = await _book(client, fan, star, slot, price=40)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["transaction_id"] is not None
    assert await _balance(client, fan) == 60
    assert await _balance(client, star) == 0


@pytest.mark.asyncio
async def test_free_booking_has_no_transaction(client, fan, star, slot):
    response = await _book(client, fan, star, slot, price=0)

    assert response.status_code == 201
    assert response.json()["transaction_id"] is None
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_only_fans_can_book(client, star, make_user, slot):
    other_star = await make_user(role=star.role)
    response = await _book(client, other_star, star, slot)

    assert response.status_code == 403
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_booking_requires_an_existing_star(client, fan, make_user, slot):
    not_a_star = await make_user()
    response = await _book(client, fan, not_a_star, slot)

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_insufficient_balance_creates_nothing(client, fan, star, slot):
    response = await _book(client, fan, star, slot, price=150)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_LEDGER_004"

    listing = await client.get(BASE, headers=auth_headers(fan))
    assert listing.json() == []
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_approve_releases_payment_to_star(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    assert response.status_code == 200
    assert response.json()["status"] == "APPROVED"
    assert response.json()["approved_at"] is not None
    assert await _balance(client, fan) == 60
    assert await _balance(client, star) == 40

    tx = await client.get(f"/v1/wallet/transactions/{appointment['transaction_id']}", headers=auth_headers(fan))
    assert tx.json()["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_only_the_booked_star_can_approve(client, fan, star, make_user, slot):
    other_star = await make_user(role=star.role)
    appointment = (await _book(client, fan, star, slot)).json()

    response = await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(other_star))

    assert response.status_code == 403
    assert await _balance(client, star) == 0


@pytest.mark.asyncio
async def test_fan_cannot_approve(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot)).json()
    response = await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(fan))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reject_returns_escrow(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.post(f"{BASE}/{appointment['id']}/reject", headers=auth_headers(star))

    assert response.status_code == 200
    assert response.json()["status"] == "REJECTED"
    assert await _balance(client, fan) == 100
    assert await _balance(client, star) == 0


@pytest.mark.asyncio
async def test_reject_after_approve_is_a_booking_error(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    response = await client.post(f"{BASE}/{appointment['id']}/reject", headers=auth_headers(star))

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BOOKING_001"
    assert await _balance(client, star) == 40


@pytest.mark.asyncio
async def test_fan_cancel_returns_escrow(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.post(f"{BASE}/{appointment['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_cancel_after_payout_conflicts(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    response = await client.post(f"{BASE}/{appointment['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BOOKING_002"
    detail = await client.get(f"{BASE}/{appointment['id']}", headers=auth_headers(fan))
    assert detail.json()["status"] == "APPROVED"
    assert await _balance(client, star) == 40


@pytest.mark.asyncio
async def test_cancel_twice_fails(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()
    await client.post(f"{BASE}/{appointment['id']}/cancel", headers=auth_headers(fan))

    response = await client.post(f"{BASE}/{appointment['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 409
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_admin_can_approve_any_appointment(client, fan, star, admin, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(admin))

    assert response.status_code == 200
    assert await _balance(client, star) == 40


@pytest.mark.asyncio
async def test_booking_copies_the_slot_date_and_window(client, fan, star, slot):
    response = await _book(client, fan, star, slot, price=0)

    assert response.status_code == 201
    data = response.json()
    assert data["time_slot_id"] == slot.id
    assert data["date"] == slot.date.isoformat()
    assert data["time"] == "10:00 - 11:00"


@pytest.mark.asyncio
async def test_slot_of_another_star_is_not_found(client, fan, star, make_user, make_slots):
    other_star = await make_user(role=star.role)
    foreign = (await make_slots(other_star))[0]

    response = await _book(client, fan, star, foreign)

    assert response.status_code == 404
    assert response.json()["details"] == {"resource": "TimeSlot", "id": foreign.id}
    assert await _balance(client, fan) == 100


@pytest.mark.asyncio
async def test_approval_reserves_the_slot(client, fan, star, slot, make_user):
    other_fan = await make_user(balance=100)
    appointment = (await _book(client, fan, star, slot, price=40)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    late = await _book(client, other_fan, star, slot, price=40)

    assert await _slot_status(client, fan, slot) == "UNAVAILABLE"
    assert late.status_code == 409
    assert late.json()["error_code"] == "ERR_BOOKING_006"
    assert await _balance(client, other_fan) == 100


@pytest.mark.asyncio
async def test_only_one_request_per_slot_can_be_approved(client, fan, star, slot, make_user):
    other_fan = await make_user(balance=100)
    first = (await _book(client, fan, star, slot, price=10)).json()
    second = (await _book(client, other_fan, star, slot, price=10)).json()
    await client.post(f"{BASE}/{first['id']}/approve", headers=auth_headers(star))

    response = await client.post(f"{BASE}/{second['id']}/approve", headers=auth_headers(star))

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BOOKING_006"
    detail = await client.get(f"{BASE}/{second['id']}", headers=auth_headers(other_fan))
    assert detail.json()["status"] == "PENDING"
    assert await _balance(client, star) == 10
    assert await _balance(client, other_fan) == 90


@pytest.mark.asyncio
async def test_cancelling_a_free_approved_appointment_frees_the_slot(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=0)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    response = await client.post(f"{BASE}/{appointment['id']}/cancel", headers=auth_headers(fan))

    assert response.status_code == 200
    assert await _slot_status(client, fan, slot) == "AVAILABLE"


@pytest.mark.asyncio
async def test_reschedule_pending_appointment(client, fan, star, slot, make_slots):
    later = (await make_slots(star, "15:30-16:30", days_ahead=21))[0]
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.patch(
        f"{BASE}/{appointment['id']}/reschedule",
        json={"time_slot_id": later.id},
        headers=auth_headers(fan)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "PENDING"
    assert data["time_slot_id"] == later.id
    assert data["date"] == later.date.isoformat()
    assert data["time"] == "15:30 - 16:30"
    assert await _balance(client, fan) == 60


@pytest.mark.asyncio
async def test_reschedule_onto_the_same_slot_is_refused(client, fan, star, slot):
    appointment = (await _book(client, fan, star, slot, price=40)).json()

    response = await client.patch(
        f"{BASE}/{appointment['id']}/reschedule",
        json={"time_slot_id": slot.id},
        headers=auth_headers(fan)
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BOOKING_005"


@pytest.mark.asyncio
async def test_reschedule_after_payout_conflicts(client, fan, star, slot, make_slots):
    later = (await make_slots(star, "15:30-16:30", days_ahead=21))[0]
    appointment = (await _book(client, fan, star, slot, price=40)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    response = await client.patch(
        f"{BASE}/{appointment['id']}/reschedule",
        json={"time_slot_id": later.id},
        headers=auth_headers(fan)
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_BOOKING_002"
    assert await _slot_status(client, fan, slot) == "UNAVAILABLE"


@pytest.mark.asyncio
async def test_free_approved_appointment_can_be_rescheduled(client, fan, star, slot, make_slots):
    later = (await make_slots(star, "15:30-16:30", days_ahead=21))[0]
    appointment = (await _book(client, fan, star, slot, price=0)).json()
    await client.post(f"{BASE}/{appointment['id']}/approve", headers=auth_headers(star))

    response = await client.patch(
        f"{BASE}/{appointment['id']}/reschedule",
        json={"time_slot_id": later.id},
        headers=auth_headers(fan)
    )

    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"
    assert response.json()["approved_at"] is None
    assert await _slot_status(client, fan, slot) == "AVAILABLE"
    assert await _slot_status(client, fan, later) == "AVAILABLE"


@pytest.mark.asyncio
async def test_listing_is_scoped_by_role(client, fan, star, admin, make_user, slot):
    other_fan = await make_user(balance=100)
    await _book(client, fan, star, slot, price=10)
    await _book(client, other_fan, star, slot, price=10)

    fan_view = await client.get(BASE, headers=auth_headers(fan))
    star_view = await client.get(BASE, headers=auth_headers(star))
    admin_view = await client.get(BASE, headers=auth_headers(admin))

    assert len(fan_view.json()) == 1
    assert len(star_view.json()) == 2
    assert len(admin_view.json()) == 2


@pytest.mark.asyncio
async def test_strangers_cannot_read_an_appointment(client, fan, star, make_user, slot):
    stranger = await make_user()
    appointment = (await _book(client, fan, star, slot)).json()

    response = await client.get(f"{BASE}/{appointment['id']}", headers=auth_headers(stranger))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_booking_notifies_the_star(client, fan, star, slot):
    await _book(client, fan, star, slot, price=40)

    response = await client.get("/v1/notifications", headers=auth_headers(star))

    assert response.status_code == 200
    titles = [n["title"] for n in response.json()]
    assert "New appointment request" in titles
