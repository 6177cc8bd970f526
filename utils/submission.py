"""
Period submission guard.

One AM (Time In) and one PM (Time Out) entry per intern per UTC calendar day.
The slot is filled with a compare-and-set on the day document, so two
concurrent submissions for the same slot cannot both succeed. Duplicate and
storage-conflict outcomes are returned as values on SubmitResult; only input
validation raises.
"""

import logging

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from models.daily_log import DailyLog
from models.period_entry import PeriodEntry, normalize_period
from utils.dates import day_start, utcnow
from utils.db import to_object_id
from utils.errors import ConflictError, DuplicateSubmissionError

logger = logging.getLogger(__name__)

SLOTS = {"AM": "amLog", "PM": "pmLog"}


class SubmitResult:
    def __init__(self, entry=None, log_id=None, error=None):
        self.entry = entry
        self.log_id = log_id
        self.error = error

    @property
    def ok(self):
        return self.error is None

    def __repr__(self):
        if self.ok:
            return f"<SubmitResult ok log={self.log_id}>"
        return f"<SubmitResult {type(self.error).__name__}>"


def slot_filled(collection, intern_id, day, period):
    """True if any stored record for (intern, day) already holds the period."""
    slot = SLOTS[normalize_period(period)]
    return collection.find_one({
        "internId": to_object_id(intern_id, "internId"),
        "date": day_start(day),
        slot: {"$ne": None},
    }, {"_id": 1}) is not None


def submit_period(intern_id, date, period, payload, collection=None, now=None):
    """
    Validate the payload and write it into the (intern, day) slot.

    Raises ValidationError for bad input. Returns a SubmitResult whose error is
    a DuplicateSubmissionError when the slot is taken, or a ConflictError when
    the unique (internId, date) index rejected a racing insert.
    """
    period = normalize_period(period)
    intern_oid = to_object_id(intern_id, "internId")
    day = day_start(date)
    now = now or utcnow()
    entry = PeriodEntry.from_payload(period, payload, now=now).to_dict()

    collection = collection if collection is not None else DailyLog.collection()
    slot = SLOTS[period]
    key = {"internId": intern_oid, "date": day}

    # Another raw record for the same pair may already hold the slot
    if slot_filled(collection, intern_oid, day, period):
        logger.info("Duplicate %s submission rejected for intern %s on %s", period, intern_oid, day.date())
        return SubmitResult(error=DuplicateSubmissionError(period))

    try:
        collection.update_one(
            key,
            {"$setOnInsert": {"createdAt": now}},
            upsert=True,
        )
    except DuplicateKeyError:
        logger.warning("Day document race for intern %s on %s", intern_oid, day.date())
        return SubmitResult(error=ConflictError("Log already exists for this date"))

    doc = collection.find_one_and_update(
        dict(key, **{slot: None}),
        {"$set": {slot: entry, "updatedAt": now}},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        logger.info("Lost %s slot race for intern %s on %s", period, intern_oid, day.date())
        return SubmitResult(error=DuplicateSubmissionError(period))

    logger.info("Stored %s entry for intern %s on %s (log %s)", period, intern_oid, day.date(), doc["_id"])
    return SubmitResult(entry=doc[slot], log_id=doc["_id"])


def submit_with_retry(intern_id, date, period, payload, collection=None, now=None):
    """Retry once on a storage conflict; a second conflict counts as a duplicate."""
    result = submit_period(intern_id, date, period, payload, collection=collection, now=now)
    if isinstance(result.error, ConflictError):
        result = submit_period(intern_id, date, period, payload, collection=collection, now=now)
        if isinstance(result.error, ConflictError):
            return SubmitResult(error=DuplicateSubmissionError(normalize_period(period)))
    return result
