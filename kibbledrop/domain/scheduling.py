# kibbledrop/domain/scheduling.py
"""
Delivery-date rules for subscriptions.

`next_delivery` is only an annotation: nothing in the service fires on it,
these helpers just keep it consistent when a subscription is created,
activated, skipped or has its frequency changed.
"""
import calendar
from datetime import date, timedelta
from typing import List, Tuple

FREQUENCY_DAYS = {
    "weekly": 7,
    "bi-weekly": 14,
    "tri-weekly": 21,
}

FREQUENCIES = ("weekly", "bi-weekly", "tri-weekly", "monthly", "custom")


def add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return anchor.replace(year=year, month=month, day=day)


def advance(anchor: date, frequency: str) -> date:
    """One delivery period after `anchor`. Anything unrecognized is monthly."""
    days = FREQUENCY_DAYS.get(frequency)
    if days is not None:
        return anchor + timedelta(days=days)
    return add_months(anchor, 1)


def reschedule_for_frequency(frequency: str, today: date | None = None) -> date:
    return advance(today or date.today(), frequency)


def skip(next_delivery: date, skipped: List[str] | None, frequency: str) -> Tuple[date, List[str]]:
    new_skipped = list(skipped or [])
    new_skipped.append(next_delivery.isoformat())
    return advance(next_delivery, frequency), new_skipped
