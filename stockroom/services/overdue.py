"""Overdue sweep: promote late loans and raise one alert per loan.

The engine has no scheduler. Callers run ``sweep_overdue`` on a timer or
whenever a dashboard is shown; running it again with no time passing changes
nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field

from ..core import keys
from ..core.errors import reports_failures
from ..core.timeutil import parse_iso, resolve_now, whole_days_between
from ..crud.collection import save_collection
from ..crud.notifications import list_notifications, record_notification
from ..crud.storage import KeyValueStore
from ..schemas.borrow import ACTIVE_STATUSES, BorrowRecord, BorrowStatus
from ..schemas.history import EntityType
from ..schemas.notification import NotificationType
from .lending import list_borrows

LOGGER = logging.getLogger(__name__)


class SweepReport(BaseModel):
    """Borrow ids touched by one sweep."""

    transitioned: list[str] = Field(default_factory=list)
    notified: list[str] = Field(default_factory=list)


def _expected_return(borrow: BorrowRecord) -> datetime | None:
    try:
        return parse_iso(borrow.expected_return_date)
    except ValueError:
        LOGGER.warning("borrow.bad_expected_date", extra={"extra_data": {"borrow_id": borrow.id}})
        return None


def is_borrow_overdue(borrow: BorrowRecord, now: datetime | None = None) -> bool:
    if borrow.status == BorrowStatus.RETURNED:
        return False
    if borrow.status == BorrowStatus.OVERDUE:
        return True
    expected = _expected_return(borrow)
    return expected is not None and expected < resolve_now(now)


def days_past_due(borrow: BorrowRecord, now: datetime | None = None) -> int:
    expected = _expected_return(borrow)
    if expected is None:
        return 0
    return whole_days_between(expected, resolve_now(now))


def overdue_status_text(borrow: BorrowRecord, now: datetime | None = None) -> str:
    """Label for tables: ``Overdue • 3d``, ``Overdue`` or the plain status."""

    if not is_borrow_overdue(borrow, now):
        return borrow.status.value
    days = days_past_due(borrow, now)
    return f"Overdue • {days}d" if days > 0 else "Overdue"


@reports_failures
def sweep_overdue(
    store: KeyValueStore,
    *,
    actor: str = "System",
    now: datetime | None = None,
) -> SweepReport:
    store.require_available()
    now = resolve_now(now)
    report = SweepReport()
    borrows = list_borrows(store)
    alerted = {
        n.entity_id for n in list_notifications(store) if n.type == NotificationType.OVERDUE
    }

    for borrow in borrows:
        if borrow.status not in ACTIVE_STATUSES:
            continue
        expected = _expected_return(borrow)
        if expected is None or not expected < now:
            continue
        if borrow.status == BorrowStatus.BORROWED:
            borrow.status = BorrowStatus.OVERDUE
            report.transitioned.append(borrow.id)
        if borrow.id not in alerted:
            days = whole_days_between(expected, now)
            record_notification(
                store,
                type=NotificationType.OVERDUE,
                title="Item Overdue",
                message=f"{borrow.item_name} borrowed by {borrow.borrower_name} is {days} day(s) overdue",
                entity_id=borrow.id,
                entity_type=EntityType.BORROW.value,
                created_by=actor,
                now=now,
            )
            alerted.add(borrow.id)
            report.notified.append(borrow.id)

    if report.transitioned:
        save_collection(store, keys.BORROWS, borrows)
    if report.transitioned or report.notified:
        LOGGER.info(
            "sweep.completed",
            extra={
                "extra_data": {
                    "transitioned": len(report.transitioned),
                    "notified": len(report.notified),
                }
            },
        )
    return report
