"""
Log reconciler.

The unique (internId, date) index should leave one raw record per intern per
day, but a duplicate write can split a day across records (AM on one, PM on
another). Reconciliation folds every record of a pair into one
MergedDailyLog and must never drop a period entry that any record holds.
"""

import logging
from collections import OrderedDict
from datetime import datetime

from models.merged_log import MergedDailyLog
from utils.dates import day_key, parse_timestamp
from utils.errors import ValidationError

logger = logging.getLogger(__name__)


def _as_record(item):
    if isinstance(item, MergedDailyLog):
        record = item.to_dict()
        record["sourceIds"] = list(item.source_ids)
        return record
    return item


def _valid_entry(entry):
    """A period entry counts only if it is a mapping with a usable timestamp."""
    if not isinstance(entry, dict):
        return None
    if parse_timestamp(entry.get("timestamp")) is None:
        return None
    return entry


def _creation_key(record):
    created = parse_timestamp(record.get("createdAt")) or datetime.min
    return created, str(record.get("_id", ""))


def _group_key(record):
    """(date key, intern key) or None when a structural field is missing."""
    intern_id = record.get("internId")
    if isinstance(intern_id, dict):
        # populated reference
        intern_id = intern_id.get("_id")
    if intern_id is None or record.get("date") is None:
        return None
    try:
        key = day_key(record["date"])
    except ValidationError:
        return None
    return key, str(intern_id)


def merge_group(records):
    """Fold the raw records of one (intern, day) pair into a MergedDailyLog."""
    ordered = sorted(records, key=_creation_key)
    date, intern_id = _group_key(ordered[0])

    am_log = pm_log = None
    intern = None
    source_ids = set()
    with_both = with_pm = None

    for record in ordered:
        am = _valid_entry(record.get("amLog"))
        pm = _valid_entry(record.get("pmLog"))
        if record.get("amLog") is not None and am is None:
            logger.warning("Ignoring malformed AM entry on log %s", record.get("_id"))
        if record.get("pmLog") is not None and pm is None:
            logger.warning("Ignoring malformed PM entry on log %s", record.get("_id"))

        if am is not None:
            am_log = am
        if pm is not None:
            pm_log = pm
        if am is not None and pm is not None and with_both is None:
            with_both = record
        if pm is not None and with_pm is None:
            with_pm = record

        if intern is None:
            intern = record.get("intern")
            if intern is None and isinstance(record.get("internId"), dict):
                intern = record["internId"]

        for source_id in record.get("sourceIds") or [record.get("_id")]:
            if source_id is not None:
                source_ids.add(source_id)

    primary = with_both or with_pm or ordered[0]
    return MergedDailyLog(
        intern_id=intern_id,
        date=date,
        am_log=am_log,
        pm_log=pm_log,
        primary_id=primary.get("_id"),
        source_ids=sorted(source_ids, key=str),
        intern=intern,
    )


def reconcile(raw_logs):
    """
    Group raw records by day, then by intern, and merge each group.

    Group order follows first appearance in the input; the caller decides the
    final presentation order (see sort_merged).
    """
    groups = OrderedDict()
    skipped = 0
    for item in raw_logs:
        record = _as_record(item)
        key = _group_key(record)
        if key is None:
            skipped += 1
            continue
        date, intern_id = key
        groups.setdefault(date, OrderedDict()).setdefault(intern_id, []).append(record)

    if skipped:
        logger.warning("Skipped %d log record(s) without an intern or date", skipped)

    merged = []
    for by_intern in groups.values():
        for records in by_intern.values():
            merged.append(merge_group(records))
    return merged


def sort_merged(merged, newest_first=True):
    return sorted(merged, key=lambda m: (m.date, m.intern_id), reverse=newest_first)


def group_by_date(merged, newest_first=True):
    """[(date key, [MergedDailyLog, ...]), ...] for per-day presentation."""
    days = OrderedDict()
    for item in sort_merged(merged, newest_first=newest_first):
        days.setdefault(item.date, []).append(item)
    return list(days.items())


def merged_for_intern(merged, intern_id):
    intern_id = str(intern_id)
    return [item for item in merged if item.intern_id == intern_id]
