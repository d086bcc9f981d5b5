from datetime import datetime
import pytz


def utc_now():
    """Current wall-clock time as an aware UTC datetime"""
    return datetime.now(pytz.utc)


def get_day_key(now=None, timezone="UTC"):
    """Returns the calendar-day key ("YYYY-MM-DD") that scopes daily counters.

    `now` defaults to the current time. Naive datetimes are taken as UTC.
    """
    tz = pytz.timezone(timezone)
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = pytz.utc.localize(now)

    return now.astimezone(tz).strftime("%Y-%m-%d")
