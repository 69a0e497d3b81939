from datetime import date, datetime, time, timezone

import regex as re
from dateutil import tz
from tzlocal import get_localzone

RE_PARENTHESISED = re.compile(r"\([^()]*\)")
RE_SPACES = re.compile(r"\s+")


def strip_braces(date_string):
    return re.sub(r"[{}\[\]]+", "", date_string)


def strip_parenthesised(date_string):
    """Drop trailing zone names such as "(Central European Summer Time)"."""
    return RE_SPACES.sub(" ", RE_PARENTHESISED.sub(" ", date_string)).strip()


def get_timezone_from_tz_string(tz_string):
    if not tz_string or not tz_string.strip():
        raise ValueError("Empty timezone identifier")
    if tz_string.strip().lower() == "local":
        return get_localzone()
    zone = tz.gettz(tz_string.strip())
    if zone is None:
        raise ValueError("Unknown timezone identifier: %s" % tz_string)
    return zone


def to_utc_datetime(instant):
    """Epoch seconds (or an aware datetime) to an aware UTC datetime."""
    if isinstance(instant, datetime):
        if instant.tzinfo is None:
            return instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(timezone.utc)
    return datetime.fromtimestamp(int(instant), tz=timezone.utc)


def to_epoch(dt):
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def utc_day_of(instant) -> date:
    return to_utc_datetime(instant).date()


def start_of_day(instant, zone) -> int:
    """Epoch seconds of local midnight, in `zone`, of the day containing `instant`."""
    local = to_utc_datetime(instant).astimezone(zone)
    midnight = datetime.combine(local.date(), time(0), tzinfo=zone)
    return to_epoch(midnight)


def format_hhmm(instant):
    if instant is None:
        return None
    return to_utc_datetime(instant).strftime("%H:%M")
