"""
utils/db.py
-----------------
This module initializes and manages the MongoDB connection
for the entire Flask application.
"""

import logging
from datetime import date, datetime

from bson import ObjectId
from bson.errors import InvalidId
from flask_pymongo import PyMongo
from pymongo import ASCENDING

from utils.errors import ValidationError

logger = logging.getLogger(__name__)

# Create a global MongoDB instance
mongo = PyMongo()


def init_db_connection(app):
    """
    Initialize MongoDB connection with Flask app.
    MONGO_URI comes from the app config (see config.py).
    """
    mongo.init_app(app)
    if app.config.get("ENSURE_INDEXES"):
        ensure_indexes()

    logger.info("MongoDB connection initialized")
    return mongo


def ensure_indexes():
    # One log document per intern per calendar day
    mongo.db.daily_logs.create_index(
        [("internId", ASCENDING), ("date", ASCENDING)], unique=True
    )
    mongo.db.daily_logs.create_index([("date", ASCENDING)])
    mongo.db.interns.create_index("email", unique=True)
    mongo.db.interns.create_index("studentId", unique=True)


def to_object_id(value, field="id"):
    """Parse an ObjectId or raise a field-level ValidationError."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value).strip())
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {field}", field=field)


def serialize(value):
    """Make Mongo documents JSON friendly (ObjectId -> str, datetime -> ISO)."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value
