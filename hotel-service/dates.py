import logging
import math
from datetime import date, datetime
from typing import Optional, Union

from errors import CheckInInPast, InvalidDate, InvalidRange, MissingDate
from models import DateRange

DateInput = Union[date, datetime, str, None]

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
MAX_CLIENT_DATE_SKEW_DAYS = 1


def parse_date(value: DateInput) -> Optional[date]:
    """Parse a date-picker value; blank input yields None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidDate(text) from None


def calculate_nights(check_in: Union[date, datetime], check_out: Union[date, datetime]) -> int:
    """Calculate number of nights between two dates, rounding partial days up."""
    if isinstance(check_in, datetime) != isinstance(check_out, datetime):
        check_in = _as_datetime(check_in)
        check_out = _as_datetime(check_out)
    delta = check_out - check_in
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def validate_date_range(check_in: DateInput, check_out: DateInput, *, today: date) -> DateRange:
    """Validate a check-in/check-out pair against ``today``.

    Rules are applied in order: both dates present, check-in not in the
    past, check-out strictly after check-in.
    """
    check_in_date = parse_date(check_in)
    check_out_date = parse_date(check_out)

    if check_in_date is None:
        raise MissingDate("check_in")
    if check_out_date is None:
        raise MissingDate("check_out")
    if check_in_date < today:
        raise CheckInInPast(check_in_date, today)
    if calculate_nights(check_in_date, check_out_date) < 1:
        raise InvalidRange(check_in_date, check_out_date)

    return DateRange(check_in=check_in_date, check_out=check_out_date)


def resolve_today(client_date: DateInput, server_today: date) -> date:
    """The caller's local date, trusted only within a day of the server's.

    Time zones put a caller at most one calendar day away from the server;
    anything further is ignored in favour of the server date.
    """
    try:
        claimed = parse_date(client_date)
    except InvalidDate:
        logger.warning(f"Ignoring unparseable client date {client_date!r}")
        return server_today
    if claimed is None:
        return server_today
    if abs((claimed - server_today).days) > MAX_CLIENT_DATE_SKEW_DAYS:
        logger.warning(f"Ignoring client date {claimed} too far from server date {server_today}")
        return server_today
    return claimed
