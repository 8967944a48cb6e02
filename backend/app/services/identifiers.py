"""
Collision-checked identifier generation.

Candidates are drawn at random in a fixed shape and checked against the
store until an unused one is found. The retry loop is bounded by
`settings.id_generation_max_attempts`; small keyspaces (gold ids have only
90 values at six digits) would otherwise spin forever once full.
"""

import logging
import secrets
import string
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from backend.app.core.config import settings
from backend.app.core.exceptions import IdentifierSpaceExhaustedError
from backend.app.models.dedication_request import DedicationRequest
from backend.app.models.live_show import LiveShow
from backend.app.models.user import User

logger = logging.getLogger("starbooking.identifiers")

SHOW_CODE_ALPHABET = string.ascii_uppercase + string.digits
TRACKING_ID_PREFIX = "DR"


async def generate_unique_id(
    db: AsyncSession,
    column: InstrumentedAttribute,
    factory: Callable[[], str],
    kind: str,
    max_attempts: Optional[int] = None
) -> str:
    """
    Draw candidates from `factory` until one is absent from `column`.

    Args:
        db: Database session
        column: Unique column to check, e.g. User.account_id
        factory: Zero-argument candidate generator
        kind: Label used in logs and errors
        max_attempts: Override for settings.id_generation_max_attempts

    Raises:
        IdentifierSpaceExhaustedError: no free value within the attempt limit
    """
    attempts = settings.id_generation_max_attempts if max_attempts is None else max_attempts

    for attempt in range(1, attempts + 1):
        candidate = factory()
        result = await db.execute(select(column).where(column == candidate).limit(1))
        if result.scalar_one_or_none() is None:
            if attempt > 1:
                logger.debug("Generated %s after %d attempts", kind, attempt)
            return candidate

    logger.error("Identifier space exhausted", extra={"kind": kind, "attempts": attempts})
    raise IdentifierSpaceExhaustedError(kind, attempts)


# Candidate factories

def random_account_id(length: Optional[int] = None) -> str:
    """Numeric id without a leading zero, e.g. '482913'."""
    length = length or settings.account_id_length
    first = str(1 + secrets.randbelow(9))
    rest = "".join(str(secrets.randbelow(10)) for _ in range(length - 1))
    return first + rest


def random_gold_account_id(length: Optional[int] = None) -> str:
    """
    Vanity id in one of two patterns: AAAAAA or ABABAB.

    A is 1-9 so the id has no leading zero; B always differs from A.
    """
    length = length or settings.account_id_length
    a = 1 + secrets.randbelow(9)

    if secrets.randbelow(2) == 0:
        return str(a) * length

    b = secrets.randbelow(10)
    if b == a:
        b = (b + 1) % 10
    return "".join(str(a) if i % 2 == 0 else str(b) for i in range(length))


def random_show_code(length: Optional[int] = None) -> str:
    length = length or settings.show_code_length
    return "".join(secrets.choice(SHOW_CODE_ALPHABET) for _ in range(length))


def random_tracking_id(length: Optional[int] = None) -> str:
    length = length or settings.tracking_id_length
    return TRACKING_ID_PREFIX + "".join(str(secrets.randbelow(10)) for _ in range(length))


def is_gold_account_id(value: str) -> bool:
    """True for AAAAAA / ABABAB shaped ids."""
    if not value.isdigit() or len(value) < 2 or value[0] == "0":
        return False
    a, b = value[0], value[1]
    if a == b:
        return set(value) == {a}
    return all(ch == (a if i % 2 == 0 else b) for i, ch in enumerate(value))


# Entity-bound generators

async def generate_account_id(db: AsyncSession) -> str:
    return await generate_unique_id(db, User.account_id, random_account_id, "account id")


async def generate_gold_account_id(db: AsyncSession) -> str:
    return await generate_unique_id(db, User.account_id, random_gold_account_id, "gold account id")


async def generate_show_code(db: AsyncSession) -> str:
    return await generate_unique_id(db, LiveShow.show_code, random_show_code, "show code")


async def generate_tracking_id(db: AsyncSession) -> str:
    return await generate_unique_id(db, DedicationRequest.tracking_id, random_tracking_id, "tracking id")
