"""
Fan-out runner and reconciliation queue.

A fan-out applies one step to many child bookings (e.g. cancel every
attendance of a show). Each child runs in its own unit of work; a failing
child is rolled back alone, logged, written to `reconciliation_items` and
reported, and the loop moves on.

Steps register under a task name so an operator can retry a single failed
item later by id.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import AppException, ResourceNotFoundError, BookingRuleError
from backend.app.db.session import atomic
from backend.app.models.reconciliation_item import ReconciliationItem, ReconciliationStatus

logger = logging.getLogger("starbooking.reconciliation")

FanOutStep = Callable[[AsyncSession, int], Awaitable[Any]]

# task name -> step taking a booking id
FAN_OUT_TASKS: Dict[str, FanOutStep] = {}


def fan_out_task(name: str):
    """Register a fan-out step under `name` so failed items can be retried."""
    def decorator(step: FanOutStep) -> FanOutStep:
        FAN_OUT_TASKS[name] = step
        return step
    return decorator


@dataclass
class FanOutFailure:
    id: int
    reason: str


@dataclass
class FanOutReport:
    succeeded: List[int] = field(default_factory=list)
    failed: List[FanOutFailure] = field(default_factory=list)


def _reason(exc: Exception) -> str:
    if isinstance(exc, AppException):
        return exc.message
    return str(exc) or type(exc).__name__


async def run_fan_out(
    db: AsyncSession,
    task_name: str,
    items: List[Tuple[int, Optional[int]]],
    payload: Optional[Dict[str, Any]] = None
) -> FanOutReport:
    """
    Run the registered step for every (booking id, transaction id) pair,
    one unit of work each.

    Never raises for a per-item failure.
    """
    step = FAN_OUT_TASKS[task_name]
    report = FanOutReport()

    for booking_id, transaction_id in items:
        try:
            await step(db, booking_id)
        except Exception as exc:
            reason = _reason(exc)
            logger.warning(
                "Fan-out item failed",
                exc_info=not isinstance(exc, AppException),
                extra={"task_name": task_name, "booking_id": booking_id, "reason": reason}
            )
            report.failed.append(FanOutFailure(id=booking_id, reason=reason))
            await record_failure(db, task_name, booking_id, transaction_id, reason, payload)
        else:
            report.succeeded.append(booking_id)

    logger.info(
        "Fan-out finished",
        extra={"task_name": task_name, "succeeded": len(report.succeeded), "failed": len(report.failed)}
    )
    return report


async def record_failure(
    db: AsyncSession,
    task_name: str,
    booking_id: int,
    transaction_id: Optional[int],
    reason: str,
    payload: Optional[Dict[str, Any]] = None
) -> None:
    """Write a reconciliation row. A failure to record is logged, not raised."""
    try:
        async with atomic(db):
            db.add(ReconciliationItem(
                task_name=task_name,
                booking_id=booking_id,
                transaction_id=transaction_id,
                error_message=reason,
                payload=payload,
                status=ReconciliationStatus.FAILED,
            ))
    except Exception:
        logger.error(
            "Could not record reconciliation item",
            exc_info=True,
            extra={"task_name": task_name, "booking_id": booking_id}
        )


class ReconciliationService:

    @staticmethod
    async def list_items(
        db: AsyncSession,
        status: Optional[ReconciliationStatus] = None,
        task_name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[ReconciliationItem]:
        query = select(ReconciliationItem)
        if status:
            query = query.where(ReconciliationItem.status == status)
        if task_name:
            query = query.where(ReconciliationItem.task_name == task_name)
        query = query.order_by(ReconciliationItem.created_at.desc(), ReconciliationItem.id.desc())
        result = await db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    @staticmethod
    async def retry(db: AsyncSession, item_id: int) -> ReconciliationItem:
        """
        Re-run the failed step for one item.

        On success the item is RESOLVED; on failure the step's error
        propagates and the item stays FAILED with the new reason.
        """
        item = await db.get(ReconciliationItem, item_id, populate_existing=True)
        if item is None:
            raise ResourceNotFoundError("ReconciliationItem", item_id)
        if item.status == ReconciliationStatus.RESOLVED:
            raise BookingRuleError("Reconciliation item is already resolved", {"id": item_id})

        step = FAN_OUT_TASKS.get(item.task_name)
        if step is None:
            raise BookingRuleError("No handler registered for task", {"task_name": item.task_name})

        booking_id = item.booking_id
        try:
            await step(db, booking_id)
        except Exception as exc:
            async with atomic(db):
                item = await db.get(ReconciliationItem, item_id, populate_existing=True)
                item.error_message = _reason(exc)
            raise

        async with atomic(db):
            item = await db.get(ReconciliationItem, item_id, populate_existing=True)
            item.status = ReconciliationStatus.RESOLVED
            item.resolved_at = datetime.now(timezone.utc)

        logger.info("Reconciliation item resolved", extra={"item_id": item_id, "task_name": item.task_name})
        return item
