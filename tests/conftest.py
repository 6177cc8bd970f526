from datetime import datetime

import mongomock
import pytest
from bson import ObjectId

from app import create_app
from config import TestingConfig
from utils.db import ensure_indexes, mongo


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    class _TestConfig(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path_factory.mktemp("uploads"))

    return create_app(_TestConfig)


@pytest.fixture(autouse=True)
def db(app):
    """Fresh in-memory Mongo for every test."""
    client = mongomock.MongoClient()
    mongo.cx = client
    mongo.db = client["InternAttendanceTest"]
    ensure_indexes()
    yield mongo.db
    client.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def entry():
    def _entry(period, timestamp, late=False, **extra):
        data = {
            "imageUrl": f"/uploads/{period.lower()}.jpg",
            "imageId": f"{period.lower()}.jpg",
            "location": {"latitude": 14.5995, "longitude": 120.9842},
            "timestamp": timestamp,
            "period": period,
            "submittedLate": late,
        }
        data.update(extra)
        return data

    return _entry


@pytest.fixture
def raw_log():
    """Raw DailyLog document as it comes back from Mongo."""

    def _raw_log(intern_id, date, am=None, pm=None, created=None, log_id=None, intern=None):
        doc = {
            "_id": log_id or ObjectId(),
            "internId": intern_id,
            "date": date if isinstance(date, datetime) else datetime.fromisoformat(date),
            "createdAt": created or datetime(2024, 1, 1),
        }
        if am is not None:
            doc["amLog"] = am
        if pm is not None:
            doc["pmLog"] = pm
        if intern is not None:
            doc["intern"] = intern
        return doc

    return _raw_log


@pytest.fixture
def complete_day(entry, raw_log):
    """Raw record with both entries, 08:00 to 17:00 UTC."""

    def _complete_day(intern_id, day, **kwargs):
        am = entry("AM", datetime.fromisoformat(f"{day}T08:00:00"))
        pm = entry("PM", datetime.fromisoformat(f"{day}T17:00:00"))
        return raw_log(intern_id, day, am=am, pm=pm, **kwargs)

    return _complete_day


@pytest.fixture
def intern_doc(db):
    def _intern_doc(name="Juan Dela Cruz", student_id="2024-0001", company="Acme Corp", email=None):
        doc = {
            "name": name,
            "email": email or f"{student_id}@example.com",
            "studentId": student_id,
            "password": "x",
            "company": company,
            "companyAddress": "1 Main St",
            "mustChangePassword": True,
            "createdAt": datetime(2024, 1, 1),
        }
        doc["_id"] = db.interns.insert_one(doc).inserted_id
        return doc

    return _intern_doc
