"""
Availability Service (Domain Logic).

Stars publish bookable time slots, one availability per calendar day.
Slots are stored as 24-hour "HH:MM" bounds; "9:00 AM - 10:30 AM" style input
is accepted and normalized.

A slot stays AVAILABLE while appointments on it are only requested. The
approval that wins reserves it (UNAVAILABLE); cancelling, rescheduling or
refunding that appointment releases it again.
"""

import logging
import re
from datetime import date as date_type, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import Principal
from backend.app.core.exceptions import BookingRuleError, ResourceNotFoundError, SlotUnavailableError
from backend.app.core.guards import ensure_actor
from backend.app.db.session import atomic
from backend.app.domain.bookings.common import load, load_for_update
from backend.app.models.appointment import Appointment
from backend.app.models.availability import Availability, TimeSlot
from backend.app.models.booking_enums import AppointmentStatus, TimeSlotStatus
from backend.app.models.enums import UserRole

logger = logging.getLogger("starbooking.availability")

# Appointments that still hold on to their slot
OPEN_APPOINTMENT_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.APPROVED)

AvailabilityWithSlots = Tuple[Availability, List[TimeSlot]]

_TIME_24H = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_TIME_12H = re.compile(r"^(\d{1,2}):([0-5]\d)\s*(AM|PM)$", re.IGNORECASE)


def to_24_hour(value: str) -> str:
    """Normalize "9:05", "09:05" or "9:05 pm" to "HH:MM"."""
    raw = value.strip()

    match = _TIME_24H.match(raw)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    match = _TIME_12H.match(raw)
    if match:
        hour = int(match.group(1))
        if not 1 <= hour <= 12:
            raise ValueError(f"Hour must be 1-12 in '{value}'")
        suffix = match.group(3).upper()
        if suffix == "PM" and hour != 12:
            hour += 12
        if suffix == "AM" and hour == 12:
            hour = 0
        return f"{hour:02d}:{match.group(2)}"

    raise ValueError(f"Invalid time '{value}', expected HH:MM or HH:MM AM/PM")


def parse_slot(value: str) -> Tuple[str, str]:
    """
    Split "start - end" into normalized bounds.

    Raises:
        BookingRuleError: malformed slot, or one that does not end after it starts
    """
    parts = value.split("-")
    if len(parts) != 2:
        raise BookingRuleError("Time slot must be in start-end format", {"slot": value})
    try:
        start, end = to_24_hour(parts[0]), to_24_hour(parts[1])
    except ValueError as exc:
        raise BookingRuleError(str(exc), {"slot": value})
    if start >= end:
        raise BookingRuleError("Time slot must end after it starts", {"slot": value})
    return start, end


class AvailabilityService:

    @staticmethod
    async def create(
        db: AsyncSession,
        actor: Principal,
        date: date_type,
        time_slots: List[str]
    ) -> AvailabilityWithSlots:
        """
        Publish slots for `date`.

        A second call for the same day adds the new windows to the existing
        availability; windows already published are left as they are.

        Raises:
            BookingRuleError: malformed slot, past date, or a slot today that has already started
        """
        windows = list(dict.fromkeys(parse_slot(slot) for slot in time_slots))

        today = date_type.today()
        if date < today:
            raise BookingRuleError("Cannot create availability for past dates", {"date": date.isoformat()})
        if date == today:
            now = datetime.now().strftime("%H:%M")
            for start, end in windows:
                if start <= now:
                    raise BookingRuleError(
                        f"Time slot {start} - {end} is in the past", {"date": date.isoformat()}
                    )

        async with atomic(db):
            result = await db.execute(
                select(Availability)
                .where(Availability.star_id == actor.user_id, Availability.date == date)
                .with_for_update()
            )
            availability = result.scalar_one_or_none()
            if availability is None:
                availability = Availability(star_id=actor.user_id, date=date)
                db.add(availability)
                await db.flush()

            published = {(slot.start_time, slot.end_time) for slot in await _slots_of(db, [availability.id])}
            added = 0
            for start, end in windows:
                if (start, end) in published:
                    continue
                db.add(TimeSlot(
                    availability_id=availability.id,
                    star_id=actor.user_id,
                    date=date,
                    start_time=start,
                    end_time=end,
                    status=TimeSlotStatus.AVAILABLE,
                ))
                added += 1
            await db.flush()
            await db.refresh(availability)
            slots = await _slots_of(db, [availability.id])

        logger.info(
            "Availability published",
            extra={"availability_id": availability.id, "star_id": actor.user_id, "slots_added": added}
        )
        return availability, slots

    @staticmethod
    async def list_for(
        db: AsyncSession,
        actor: Principal,
        star_id: Optional[int] = None,
        from_date: Optional[date_type] = None,
        available_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> List[AvailabilityWithSlots]:
        """A star's availabilities by date. Stars default to their own."""
        if star_id is None:
            if actor.role != UserRole.STAR:
                raise BookingRuleError("star_id is required")
            star_id = actor.user_id

        query = select(Availability).where(Availability.star_id == star_id)
        if from_date:
            query = query.where(Availability.date >= from_date)
        query = query.order_by(Availability.date.asc()).limit(limit).offset(offset)
        availabilities = list((await db.execute(query)).scalars().all())

        slots = await _slots_of(db, [a.id for a in availabilities], available_only=available_only)
        grouped: Dict[int, List[TimeSlot]] = {a.id: [] for a in availabilities}
        for slot in slots:
            grouped[slot.availability_id].append(slot)
        return [(a, grouped[a.id]) for a in availabilities]

    @staticmethod
    async def get(db: AsyncSession, availability_id: int) -> AvailabilityWithSlots:
        availability = await load(db, Availability, availability_id, "Availability")
        return availability, await _slots_of(db, [availability.id])

    @staticmethod
    async def delete(db: AsyncSession, actor: Principal, availability_id: int) -> None:
        """Remove a day and all its slots, unless one of them is still booked."""
        async with atomic(db):
            availability = await load_for_update(db, Availability, availability_id, "Availability")
            ensure_actor(actor, availability.star_id, message="Only the star can delete this availability")

            slot_ids = [slot.id for slot in await _slots_of(db, [availability.id])]
            await _ensure_no_open_appointments(db, slot_ids)

            await db.execute(delete(TimeSlot).where(TimeSlot.availability_id == availability.id))
            await db.delete(availability)

        logger.info("Availability deleted", extra={"availability_id": availability_id})

    @staticmethod
    async def delete_slot(db: AsyncSession, actor: Principal, time_slot_id: int) -> None:
        """Remove one slot; the day goes with its last slot."""
        async with atomic(db):
            slot = await load_for_update(db, TimeSlot, time_slot_id, "TimeSlot")
            ensure_actor(actor, slot.star_id, message="Only the star can delete this time slot")
            await _ensure_no_open_appointments(db, [slot.id])

            availability_id = slot.availability_id
            await db.delete(slot)
            await db.flush()

            if not await _slots_of(db, [availability_id]):
                await db.execute(delete(Availability).where(Availability.id == availability_id))

        logger.info("Time slot deleted", extra={"time_slot_id": time_slot_id})

    @staticmethod
    async def bookable_slot(db: AsyncSession, star_id: int, time_slot_id: int) -> TimeSlot:
        """
        Load a slot a fan may book with `star_id`.

        Raises:
            ResourceNotFoundError: no such slot for this star
            SlotUnavailableError: slot already reserved
        """
        slot = await db.get(TimeSlot, time_slot_id, populate_existing=True)
        if slot is None or slot.star_id != star_id:
            raise ResourceNotFoundError("TimeSlot", time_slot_id)
        if slot.status != TimeSlotStatus.AVAILABLE:
            raise SlotUnavailableError(time_slot_id)
        return slot

    @staticmethod
    async def reserve_slot(db: AsyncSession, time_slot_id: Optional[int]) -> None:
        """AVAILABLE -> UNAVAILABLE, guarded so only one approval can win."""
        if time_slot_id is None:
            return
        result = await db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == time_slot_id, TimeSlot.status == TimeSlotStatus.AVAILABLE)
            .values(status=TimeSlotStatus.UNAVAILABLE)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise SlotUnavailableError(time_slot_id)

    @staticmethod
    async def release_slot(db: AsyncSession, time_slot_id: Optional[int]) -> None:
        if time_slot_id is None:
            return
        await db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == time_slot_id)
            .values(status=TimeSlotStatus.AVAILABLE)
            .execution_options(synchronize_session=False)
        )


async def _slots_of(
    db: AsyncSession,
    availability_ids: Iterable[int],
    available_only: bool = False
) -> List[TimeSlot]:
    ids = list(availability_ids)
    if not ids:
        return []
    query = select(TimeSlot).where(TimeSlot.availability_id.in_(ids))
    if available_only:
        query = query.where(TimeSlot.status == TimeSlotStatus.AVAILABLE)
    result = await db.execute(
        query.order_by(TimeSlot.start_time.asc(), TimeSlot.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _ensure_no_open_appointments(db: AsyncSession, time_slot_ids: List[int]) -> None:
    if not time_slot_ids:
        return
    result = await db.execute(
        select(Appointment.id, Appointment.time_slot_id, Appointment.status)
        .where(
            Appointment.time_slot_id.in_(time_slot_ids),
            Appointment.status.in_(OPEN_APPOINTMENT_STATUSES)
        )
        .limit(1)
    )
    row = result.first()
    if row is not None:
        raise BookingRuleError(
            "Time slot has an open appointment",
            {"time_slot_id": row.time_slot_id, "appointment_id": row.id, "appointment_status": row.status.value}
        )
