import json
import logging
import math

from utils.dates import parse_timestamp, utcnow
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

PERIODS = ("AM", "PM")
ACTIVITY_TYPES = ("Work", "Break", "Meeting", "Training", "Other")
NETWORK_TYPES = ("WIFI", "CELLULAR", "UNKNOWN")
ORIENTATIONS = ("portrait", "landscape")


def parse_number(value, minimum=None, maximum=None):
    """Parse a finite float within [minimum, maximum]; None when absent or invalid."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    if minimum is not None and number < minimum:
        return None
    if maximum is not None and number > maximum:
        return None
    return number


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _choice(value, choices):
    value = _text(value)
    return value if value in choices else None


def normalize_period(value):
    period = _text(value)
    period = period.upper() if period else None
    if period not in PERIODS:
        raise ValidationError("period must be AM or PM", field="period")
    return period


class PeriodEntry:
    """One AM (Time In) or PM (Time Out) submission stored inside a DailyLog."""

    def __init__(self, period, image_url, location, timestamp=None, image_id=None,
                 submitted_late=False, extras=None):
        self.period = period
        self.image_url = image_url
        self.image_id = image_id
        self.location = location
        self.timestamp = timestamp or utcnow()
        self.submitted_late = bool(submitted_late)
        self.extras = extras or {}

    def to_dict(self):
        data = {
            "imageUrl": self.image_url,
            "imageId": self.image_id,
            "location": self.location,
            "timestamp": self.timestamp,
            "period": self.period,
            "submittedLate": self.submitted_late,
        }
        data.update(self.extras)
        return data

    @classmethod
    def from_payload(cls, period, payload, now=None):
        """
        Build an entry from submitted form fields.

        Required: imageUrl, latitude, longitude (finite, in range).
        Optional telemetry is parsed and range checked; anything invalid is
        dropped instead of failing the submission.
        """
        period = normalize_period(period)

        image_url = _text(payload.get("imageUrl"))
        if not image_url:
            raise ValidationError("A captured image is required", field="image")

        latitude = parse_number(payload.get("latitude"), -90, 90)
        if latitude is None:
            raise ValidationError("A valid latitude is required", field="latitude")
        longitude = parse_number(payload.get("longitude"), -180, 180)
        if longitude is None:
            raise ValidationError("A valid longitude is required", field="longitude")

        timestamp = parse_timestamp(payload.get("timestamp")) or now or utcnow()

        return cls(
            period=period,
            image_url=image_url,
            image_id=_text(payload.get("imageId")),
            location=_build_location(latitude, longitude, payload),
            timestamp=timestamp,
            submitted_late=parse_bool(payload.get("submittedLate")),
            extras=_build_extras(payload),
        )


def _build_location(latitude, longitude, payload):
    location = {"latitude": latitude, "longitude": longitude}

    address = _text(payload.get("address"))
    if address:
        location["address"] = address

    ranged = {
        "altitude": (payload.get("altitude"), None, None),
        "accuracy": (payload.get("locationAccuracy", payload.get("accuracy")), 0, None),
        "heading": (payload.get("heading"), 0, 360),
        "speed": (payload.get("speed"), 0, None),
    }
    for key, (raw, low, high) in ranged.items():
        number = parse_number(raw, low, high)
        if number is not None:
            location[key] = number
    return location


# form field -> (stored key, minimum, maximum)
_NUMERIC_FIELDS = {
    "hoursWorked": ("hoursWorked", 0, 24),
    "batteryLevel": ("batteryLevel", 0, 100),
    "imageFileSize": ("imageFileSize", 0, None),
    "sessionDuration": ("sessionDuration", 0, None),
    "timeSinceLastLog": ("timeSinceLastLog", 0, None),
    "signalStrength": ("signalStrength", None, None),
    "networkSpeed": ("networkSpeed", 0, None),
    "screenBrightness": ("screenBrightness", 0, 100),
    "availableStorage": ("availableStorage", 0, None),
    "captureTime": ("captureTime", 0, None),
    "retakeCount": ("retakeCount", 0, None),
}

_TEXT_FIELDS = ("timezone", "ipAddress", "wifiSSID")


def _build_extras(payload):
    extras = {}

    notes = _text(payload.get("notes"))
    if notes:
        extras["notes"] = notes

    activity_type = _choice(payload.get("activityType"), ACTIVITY_TYPES)
    if activity_type:
        extras["activityType"] = activity_type

    network_type = _choice(payload.get("networkType"), NETWORK_TYPES)
    if network_type:
        extras["networkType"] = network_type

    orientation = _choice(payload.get("deviceOrientation"), ORIENTATIONS)
    if orientation:
        extras["deviceOrientation"] = orientation

    for field, (key, low, high) in _NUMERIC_FIELDS.items():
        number = parse_number(payload.get(field), low, high)
        if number is not None:
            extras[key] = number

    for field in _TEXT_FIELDS:
        value = _text(payload.get(field))
        if value:
            extras[field] = value

    device_info = {}
    for field, key in (("deviceModel", "model"), ("osVersion", "osVersion"), ("appVersion", "appVersion")):
        value = _text(payload.get(field))
        if value:
            device_info[key] = value
    if device_info:
        extras["deviceInfo"] = device_info

    dimensions = {}
    for field, key in (("imageWidth", "width"), ("imageHeight", "height")):
        number = parse_number(payload.get(field), 0)
        if number is not None:
            dimensions[key] = number
    if dimensions:
        extras["imageDimensions"] = dimensions

    weather = {}
    temperature = parse_number(payload.get("weatherTemperature"))
    if temperature is not None:
        weather["temperature"] = temperature
    conditions = _text(payload.get("weatherConditions"))
    if conditions:
        weather["conditions"] = conditions
    if weather:
        extras["weatherData"] = weather

    exif = payload.get("imageExif")
    if isinstance(exif, dict):
        extras["imageExif"] = exif
    elif _text(exif):
        try:
            parsed = json.loads(exif)
        except ValueError:
            logger.warning("Ignoring unparseable imageExif payload")
        else:
            if isinstance(parsed, dict):
                extras["imageExif"] = parsed

    return extras
