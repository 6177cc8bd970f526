import os

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_int(name, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/InternAttendance")
    ENSURE_INDEXES = os.getenv("ENSURE_INDEXES", "1") not in ("0", "false", "False")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Upper bound on raw records fed to the reconciler per request
    LOG_FETCH_LIMIT = _env_int("LOG_FETCH_LIMIT", 500)

    # Lateness cutoffs, local to the attendance timezone
    AM_CUTOFF = os.getenv("AM_CUTOFF", "09:00")
    PM_CUTOFF = os.getenv("PM_CUTOFF", "18:00")
    ATTENDANCE_UTC_OFFSET_MINUTES = _env_int("ATTENDANCE_UTC_OFFSET_MINUTES", 0)

    UPLOAD_FOLDER = os.getenv(
        "UPLOAD_FOLDER",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "uploads"),
    )
    MAX_CONTENT_LENGTH = _env_int("MAX_CONTENT_LENGTH", 10 * 1024 * 1024)

    DEFAULT_INTERN_PASSWORD = os.getenv("DEFAULT_INTERN_PASSWORD", "qwerty")

    GEOCODER_URL = os.getenv("GEOCODER_URL")
    GEOCODE_CACHE_SIZE = _env_int("GEOCODE_CACHE_SIZE", 1024)
    GEOCODE_CACHE_TTL = _env_int("GEOCODE_CACHE_TTL", 24 * 60 * 60)


class TestingConfig(Config):
    TESTING = True
    MONGO_URI = "mongodb://localhost:27017/InternAttendanceTest"
    ENSURE_INDEXES = False
    GEOCODER_URL = None
    LOG_LEVEL = "DEBUG"
