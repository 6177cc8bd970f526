from datetime import datetime, timedelta, timezone

from utils.dates import to_utc_naive


def _cutoff(value):
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Bad cutoff time: {value}")


def attendance_timezone(config):
    return timezone(timedelta(minutes=int(config.get("ATTENDANCE_UTC_OFFSET_MINUTES", 0))))


def is_late(period, timestamp, config):
    """True if the submission falls after the configured cutoff for its period."""
    key = "AM_CUTOFF" if period == "AM" else "PM_CUTOFF"
    cutoff = _cutoff(config.get(key) or ("09:00" if period == "AM" else "18:00"))
    local = to_utc_naive(timestamp).replace(tzinfo=timezone.utc).astimezone(attendance_timezone(config))
    return local.time() > cutoff
