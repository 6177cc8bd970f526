"""
Calendar-day keying.

Every place that turns a timestamp into "a day" goes through this module:
submission keying, reconciliation grouping and filter boundaries. The day is
always the UTC calendar day. Stored datetimes come back from PyMongo as naive
UTC values, so naive inputs are treated as UTC as well.
"""

from datetime import date, datetime, time, timezone

from utils.errors import ValidationError


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value):
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_timestamp(value):
    """datetime / ISO string -> naive UTC datetime, or None if unusable."""
    if isinstance(value, datetime):
        return to_utc_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc_naive(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def to_day(value, field="date"):
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # Plain YYYY-MM-DD keys are already calendar days
        if len(text) == 10:
            try:
                return date.fromisoformat(text)
            except ValueError:
                raise ValidationError(f"Invalid {field}: {value!r}", field=field)
        parsed = parse_timestamp(text)
        if parsed is not None:
            return parsed.date()
    raise ValidationError(f"Invalid {field}: {value!r}", field=field)


def day_start(value, field="date"):
    """UTC midnight of the day, as stored in DailyLog.date."""
    return datetime.combine(to_day(value, field), time.min)


def day_end(value, field="date"):
    return datetime.combine(to_day(value, field), time.max)


def day_key(value, field="date"):
    return to_day(value, field).isoformat()


def day_range(start=None, end=None):
    """Inclusive [start 00:00, end 23:59:59.999999] bounds; either side may be None."""
    lower = day_start(start, "startDate") if start is not None else None
    upper = day_end(end, "endDate") if end is not None else None
    if lower is not None and upper is not None and lower > upper:
        raise ValidationError("startDate must not be after endDate", field="startDate")
    return lower, upper


def week_key(value):
    iso_year, iso_week, _ = to_day(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def month_key(value):
    return to_day(value).strftime("%Y-%m")
