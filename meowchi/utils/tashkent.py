"""Tashkent calendar day tokens.

Every per-day value in the service (tap counters, the global claim quota,
claim records, the login streak) is keyed on a ``YYYY-MM-DD`` token of the
fixed UTC+05:00 zone. The offset is a constant; Uzbekistan has no DST, and
the request path and the reset job must never disagree because of a tz
database lookup.

Usage:
    from meowchi.utils.tashkent import today, is_stale

    day = today()
    if is_stale(user.meow_taps_date, day):
        ...
"""

import re
from datetime import date, datetime, time, timedelta, timezone

TASHKENT_OFFSET = timedelta(hours=5)
TASHKENT = timezone(TASHKENT_OFFSET, "Asia/Tashkent")

_TOKEN_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TOKEN_PREFIX_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")


class InvalidDayTokenError(ValueError):
    """Raised when a value is not a valid ``YYYY-MM-DD`` day token."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid day token: {value!r}")


def to_tashkent(now: datetime | None = None) -> datetime:
    """Convert an instant to Tashkent local time.

    Naive datetimes are interpreted as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(TASHKENT)


def today(now: datetime | None = None) -> str:
    """Return the Tashkent day token for ``now`` (defaults to the current instant)."""
    return to_tashkent(now).date().isoformat()


def tashkent_hour(now: datetime | None = None) -> int:
    """Current hour (0-23) in Tashkent, for logging."""
    return to_tashkent(now).hour


def parse_day(token: object) -> date:
    """Strictly parse a ``YYYY-MM-DD`` token.

    Raises:
        InvalidDayTokenError: for anything that is not exactly a valid token
    """
    if not isinstance(token, str) or not _TOKEN_RE.match(token):
        raise InvalidDayTokenError(token)
    try:
        return date.fromisoformat(token)
    except ValueError:
        raise InvalidDayTokenError(token) from None


def day_distance(a: str, b: str) -> int:
    """Absolute number of whole days between two tokens.

    Both tokens are read as UTC midnight instants, so the result is the
    plain calendar difference.

    Raises:
        InvalidDayTokenError: if either token is malformed
    """
    first = datetime.combine(parse_day(a), time.min, tzinfo=timezone.utc)
    second = datetime.combine(parse_day(b), time.min, tzinfo=timezone.utc)
    return int(abs((first - second).total_seconds()) // 86400)


def add_days(token: str, days: int) -> str:
    """Shift a token by ``days`` (negative for the past)."""
    return (parse_day(token) + timedelta(days=days)).isoformat()


def end_of_day_instant(day: str) -> datetime:
    """UTC instant at which ``day`` ends (next local midnight)."""
    next_midnight = datetime.combine(
        parse_day(day) + timedelta(days=1), time.min, tzinfo=TASHKENT
    )
    return next_midnight.astimezone(timezone.utc)


def day_token(value: object) -> str | None:
    """Normalize a stored day value into a token.

    Accepts ``date`` (DB ``DATE`` columns), aware or naive ``datetime``
    (converted to Tashkent, naive treated as UTC), token strings and
    ISO-prefixed strings. Returns ``None`` when absent or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return today(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        match = _TOKEN_PREFIX_RE.match(value.strip())
        if not match:
            return None
        try:
            return parse_day(match.group(1)).isoformat()
        except InvalidDayTokenError:
            return None
    return None


def is_stale(stored_day: object, today_token: str) -> bool:
    """True when a stored per-day value does not belong to ``today_token``.

    This is the single staleness predicate shared by the request path and
    the daily reset job.
    """
    return day_token(stored_day) != today_token


def later_day(stored_day: object, today_token: str) -> str:
    """The later of a stored day and ``today_token``.

    A request that read the clock before waiting on a row lock can hold a
    token older than the row it finally locks; the row's day wins so state
    never moves backwards.
    """
    stored = day_token(stored_day)
    if stored is not None and stored > today_token:
        return stored
    return today_token
