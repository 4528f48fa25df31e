from datetime import date

import pytest

from kibbledrop.domain import scheduling, statuses


@pytest.mark.parametrize(
    "frequency, expected",
    [
        ("weekly", date(2030, 1, 17)),
        ("bi-weekly", date(2030, 1, 24)),
        ("tri-weekly", date(2030, 1, 31)),
        ("monthly", date(2030, 2, 10)),
        ("custom", date(2030, 2, 10)),
    ],
)
def test_advance_by_frequency(frequency, expected):
    assert scheduling.advance(date(2030, 1, 10), frequency) == expected


def test_unknown_frequency_falls_back_to_monthly():
    assert scheduling.advance(date(2030, 3, 5), "fortnightly-ish") == date(2030, 4, 5)


def test_monthly_clamps_to_month_end():
    assert scheduling.advance(date(2030, 1, 31), "monthly") == date(2030, 2, 28)
    assert scheduling.advance(date(2032, 1, 31), "monthly") == date(2032, 2, 29)
    assert scheduling.add_months(date(2030, 12, 15), 1) == date(2031, 1, 15)


def test_skip_records_date_and_moves_one_period():
    next_delivery, skipped = scheduling.skip(date(2030, 1, 10), [], "weekly")

    assert next_delivery == date(2030, 1, 17)
    assert skipped == ["2030-01-10"]


def test_skip_keeps_previous_entries_and_does_not_mutate_input():
    previous = ["2030-01-03"]
    _, skipped = scheduling.skip(date(2030, 1, 10), previous, "bi-weekly")

    assert skipped == ["2030-01-03", "2030-01-10"]
    assert previous == ["2030-01-03"]


def test_skip_handles_missing_list():
    next_delivery, skipped = scheduling.skip(date(2030, 1, 10), None, "monthly")
    assert next_delivery == date(2030, 2, 10)
    assert skipped == ["2030-01-10"]


def test_reschedule_counts_from_today_not_old_date():
    assert scheduling.reschedule_for_frequency("weekly", date(2030, 6, 1)) == date(2030, 6, 8)


def test_status_normalize_and_cancellable():
    assert statuses.normalize("Cancelled") == "canceled"
    assert statuses.normalize(" PAID ") == "paid"

    assert statuses.is_cancellable("pending")
    assert statuses.is_cancellable("paid")
    assert not statuses.is_cancellable("shipped")
    assert not statuses.is_cancellable("completed")
    assert not statuses.is_cancellable("cancelled")


@pytest.mark.parametrize(
    "current, new, expected",
    [
        ("shipped", "processing", True),
        ("paid", "payment_pending", True),
        ("completed", "shipped", True),
        ("processing", "paid", False),
        ("pending", "paid", False),
        ("shipped", "canceled", False),
        ("failed", "paid", False),
    ],
)
def test_order_progress_only_moves_forward(current, new, expected):
    assert statuses.is_step_back(current, new) is expected
