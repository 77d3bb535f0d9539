"""Time zone and release time utilities.

Single source of truth for converting show and episode release information
between the encodings stored in the database.

Encodings:
    release time:     hour * 100 + minute (e.g. 2030), -1 if unknown
    release weekday:  1 (Monday) .. 7 (Sunday), 0 for daily, -1 if unknown
    episode air date: milliseconds since the epoch (UTC), -1 if unknown
"""

import logging
from datetime import UTC, date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser

from showkeeper.config import get_default_show_timezone

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_RELEASE_TIME",
    "RELEASE_TIME_LEGACY_TZ",
    "encode_release_time",
    "parse_release_weekday",
    "get_show_timezone",
    "get_show_release_time",
    "parse_episode_release_date",
]

# Legacy release times were stored as ms relative to a fixed UTC-8 zone (no DST)
RELEASE_TIME_LEGACY_TZ = timezone(timedelta(hours=-8))

# Assumed time of day for episodes of shows without a known release time
DEFAULT_RELEASE_TIME = time(20, 0)

UNKNOWN = -1
DAILY = 0

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_WEEKDAYS: dict[str, int] = {
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
    "sunday": 7,
}
_WEEKDAYS.update({name[:3]: number for name, number in list(_WEEKDAYS.items())})

# Device zones in which US networks air shows at the same local time
_US_TIMEZONES = {
    "America/New_York",
    "America/Detroit",
    "America/Indiana/Indianapolis",
    "America/Kentucky/Louisville",
    "America/Chicago",
    "America/Indiana/Knox",
    "America/Menominee",
    "America/North_Dakota/Center",
    "America/Denver",
    "America/Boise",
    "America/Phoenix",
    "America/Los_Angeles",
    "America/Anchorage",
    "Pacific/Honolulu",
}

# US Central airs an hour earlier than the other US zones
_US_CENTRAL_TIMEZONES = {
    "America/Chicago",
    "America/Indiana/Knox",
    "America/Menominee",
    "America/North_Dakota/Center",
}


def encode_release_time(release_time_ms: int | str | None) -> int:
    """Re-encode a legacy millisecond release time as HHMM in UTC-8.

    Args:
        release_time_ms: Milliseconds since the epoch, or -1 if unknown.
            Text that is not a whole number (e.g. "8:00 PM") counts as unknown.

    Returns:
        hour * 100 + minute, or -1 if unknown
    """
    if release_time_ms is None:
        return UNKNOWN
    try:
        milliseconds = int(release_time_ms)
        if milliseconds == UNKNOWN:
            return UNKNOWN
        local = (_EPOCH + timedelta(milliseconds=milliseconds)).astimezone(
            RELEASE_TIME_LEGACY_TZ
        )
    except (TypeError, ValueError, OverflowError):
        logger.debug("[TZ] Unusable legacy release time %r", release_time_ms)
        return UNKNOWN
    return local.hour * 100 + local.minute


def parse_release_weekday(value: str | int | None) -> int:
    """Parse a free text US week day into its integer encoding.

    Accepts full ("Monday") or short ("Mon") names in any case and "Daily".
    Values that are already integers are returned unchanged.
    """
    if isinstance(value, int):
        return value
    if not value:
        return UNKNOWN

    normalized = value.strip().lower()
    if normalized == "daily":
        return DAILY
    return _WEEKDAYS.get(normalized, UNKNOWN)


def get_show_timezone(timezone_name: str | None) -> ZoneInfo:
    """Get the zone a show releases in.

    Falls back to the configured default show zone if the name is
    missing or unknown.
    """
    if timezone_name:
        try:
            return ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("[TZ] Unknown show time zone %r, using default", timezone_name)
    return get_default_show_timezone()


def get_show_release_time(encoded_time: int | None) -> time:
    """Decode an HHMM release time, defaulting to 20:00 if unknown or invalid."""
    if encoded_time is None or encoded_time < 0:
        return DEFAULT_RELEASE_TIME
    hour, minute = divmod(encoded_time, 100)
    if hour > 23 or minute > 59:
        return DEFAULT_RELEASE_TIME
    return time(hour, minute)


# Two fill-in dates that differ in year, month and day
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _parse_release_day(release_date: str) -> date | None:
    """Parse a complete calendar date. Partial dates (no year, month or day) give None."""
    try:
        first, second = (
            parser.parse(release_date, default=default).date() for default in _PARSE_DEFAULTS
        )
    except (ValueError, OverflowError):
        return None
    return first if first == second else None


def parse_episode_release_date(
    show_timezone: ZoneInfo,
    release_date: str | None,
    release_time: time,
    country: str | None,
    device_timezone: str | None,
) -> int:
    """Convert a free text episode air date into milliseconds since the epoch.

    The day is combined with the show's release time in the show's zone.
    US shows watched on a device in a US zone are assumed to air at the
    same local time on the device, one hour earlier in US Central.

    Args:
        show_timezone: Zone the show releases in
        release_date: Air date text, e.g. "2010-03-15"
        release_time: Time of day the show releases
        country: Release country code of the show, e.g. "US"
        device_timezone: IANA name of the device zone

    Returns:
        Milliseconds since the epoch, or -1 if the date can not be parsed
    """
    if not release_date or not release_date.strip():
        return UNKNOWN

    release_day = _parse_release_day(release_date)
    if release_day is None:
        return UNKNOWN

    zone = show_timezone
    hour_offset = 0
    if country == "US" and device_timezone in _US_TIMEZONES:
        zone = ZoneInfo(device_timezone)
        if device_timezone in _US_CENTRAL_TIMEZONES:
            hour_offset = -1

    released = datetime.combine(release_day, release_time, tzinfo=zone)
    released += timedelta(hours=hour_offset)
    return int(released.timestamp() * 1000)
