from __future__ import annotations

from typing import TYPE_CHECKING

from leave_core.exceptions import LeaveValidationError

if TYPE_CHECKING:
    from datetime import date

    from leave_core.models.enums import HalfDayType


def count_leave_days(start_date: date, end_date: date, is_half_day: bool = False) -> float:
    """Inclusive calendar-day count between two dates, halved for half-day requests.

    Weekends and holidays are counted; the ledger tracks calendar days.
    """
    days = (end_date - start_date).days + 1
    if days < 1:
        msg = "end_date must not be before start_date"
        raise LeaveValidationError(msg)
    if is_half_day:
        return days / 2
    return float(days)


def validate_leave_window(
    start_date: date,
    end_date: date,
    is_half_day: bool,
    half_day_type: HalfDayType | None,
    *,
    today: date | None = None,
) -> None:
    """Check the date/half-day combination of a request.

    ``today`` is only passed for new submissions, which may not start in the past.
    """
    if end_date < start_date:
        msg = "end_date must not be before start_date"
        raise LeaveValidationError(msg)
    if is_half_day and half_day_type is None:
        msg = "half_day_type is required for half-day requests"
        raise LeaveValidationError(msg)
    if not is_half_day and half_day_type is not None:
        msg = "half_day_type is only allowed for half-day requests"
        raise LeaveValidationError(msg)
    if today is not None and start_date < today:
        msg = "start_date must not be in the past"
        raise LeaveValidationError(msg)
