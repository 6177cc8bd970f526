"""
Query/filter layer for daily logs.

Intern, company and date filters run on raw records. Completion status is
decided on reconciled records only: a day split across two raw records looks
"incomplete" on each half even though the day itself is complete.
"""

from models.daily_log import DailyLog
from models.interns import Intern
from models.merged_log import MergedDailyLog
from utils.dates import day_range, parse_timestamp, to_day
from utils.db import to_object_id
from utils.errors import ValidationError
from utils.metrics import intern_index
from utils.reconcile import reconcile

STATUSES = ("all", "complete", "incomplete", "am-only", "pm-only")
SORTS = ("newest", "oldest", "intern-name", "intern-name-desc")


class LogFilters:
    def __init__(self, intern_id=None, company=None, start_date=None, end_date=None, status="all"):
        self.intern_id = str(intern_id) if intern_id else None
        self.company = company or None
        self.start_date = to_day(start_date, "startDate") if start_date else None
        self.end_date = to_day(end_date, "endDate") if end_date else None
        self.status = status or "all"

        if self.status not in STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(STATUSES)}", field="status")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("startDate must not be after endDate", field="startDate")

    @classmethod
    def from_args(cls, args):
        intern_id = (args.get("internId") or "").strip() or None
        if intern_id:
            to_object_id(intern_id, "internId")
        return cls(
            intern_id=intern_id,
            company=(args.get("companyId") or args.get("company") or "").strip() or None,
            start_date=(args.get("startDate") or "").strip() or None,
            end_date=(args.get("endDate") or "").strip() or None,
            status=(args.get("status") or "all").strip(),
        )

    def __repr__(self):
        return (f"<LogFilters intern={self.intern_id} company={self.company} "
                f"{self.start_date}..{self.end_date} status={self.status}>")


def parse_sort(value):
    value = (value or "newest").strip()
    if value not in SORTS:
        raise ValidationError(f"sortBy must be one of: {', '.join(SORTS)}", field="sortBy")
    return value


def _intern_key(record):
    if isinstance(record, MergedDailyLog):
        return record.intern_id
    intern_id = record.get("internId")
    if isinstance(intern_id, dict):
        intern_id = intern_id.get("_id")
    return str(intern_id) if intern_id is not None else None


def _intern_doc(record, index):
    if isinstance(record, MergedDailyLog):
        joined = record.intern
    else:
        joined = record.get("intern")
        if joined is None and isinstance(record.get("internId"), dict):
            joined = record["internId"]
    return joined or index.get(_intern_key(record)) or {}


def _record_day(record):
    value = record.date if isinstance(record, MergedDailyLog) else record.get("date")
    try:
        return to_day(value)
    except ValidationError:
        return None


def _created_key(record):
    if isinstance(record, MergedDailyLog):
        return "", str(record.primary_id)
    created = parse_timestamp(record.get("createdAt"))
    return (created.isoformat() if created else ""), str(record.get("_id", ""))


def sort_records(records, sort_by="newest", interns=None):
    """Sort raw or reconciled records; Python's sort is stable so keys are applied last-first."""
    sort_by = parse_sort(sort_by)
    index = intern_index(interns)
    records = [r for r in records if _record_day(r) is not None]

    if sort_by in ("newest", "oldest"):
        return sorted(
            records,
            key=lambda r: (_record_day(r), _created_key(r)),
            reverse=(sort_by == "newest"),
        )

    by_date = sorted(records, key=lambda r: (_record_day(r), _created_key(r)), reverse=True)
    return sorted(
        by_date,
        key=lambda r: (_intern_doc(r, index).get("name") or "").lower(),
        reverse=(sort_by == "intern-name-desc"),
    )


def filter_and_sort(raw_logs, filters, sort_by="newest", interns=None):
    """Apply intern, company and date filters to raw records, then sort them."""
    index = intern_index(interns)
    kept = []
    for record in raw_logs:
        if filters.intern_id and _intern_key(record) != filters.intern_id:
            continue
        if filters.company and _intern_doc(record, index).get("company") != filters.company:
            continue
        day = _record_day(record)
        if day is None:
            continue
        if filters.start_date and day < filters.start_date:
            continue
        if filters.end_date and day > filters.end_date:
            continue
        kept.append(record)
    return sort_records(kept, sort_by, interns)


def matches_status(item, status):
    if status == "all":
        return True
    if status == "complete":
        return item.is_complete
    if status == "incomplete":
        return not item.is_complete
    if status == "am-only":
        return item.am_log is not None and item.pm_log is None
    if status == "pm-only":
        return item.pm_log is not None and item.am_log is None
    raise ValidationError(f"Unknown status {status!r}", field="status")


def apply_status_filter(merged, status):
    return [item for item in merged if matches_status(item, status or "all")]


def build_mongo_query(filters, company_intern_ids=None):
    """
    MongoDB query for the raw fetch. Returns None when the filters cannot
    match anything (company without interns, or intern outside the company).
    Completion status is deliberately left out.
    """
    query = {}
    if filters.company:
        ids = list(company_intern_ids or [])
        if not ids:
            return None
        if filters.intern_id:
            intern_oid = to_object_id(filters.intern_id, "internId")
            if intern_oid not in ids:
                return None
            query["internId"] = intern_oid
        else:
            query["internId"] = {"$in": ids}
    elif filters.intern_id:
        query["internId"] = to_object_id(filters.intern_id, "internId")

    lower, upper = day_range(filters.start_date, filters.end_date)
    if lower or upper:
        query["date"] = {}
        if lower:
            query["date"]["$gte"] = lower
        if upper:
            query["date"]["$lte"] = upper
    return query


def attach_interns(raw_logs, interns):
    """Join the public intern summary onto each raw record as record["intern"]."""
    index = intern_index(interns)
    for record in raw_logs:
        doc = index.get(_intern_key(record))
        if doc is not None:
            record["intern"] = Intern.summary(doc)
    return raw_logs


def query_merged_logs(raw_logs, filters, sort_by="newest", interns=None):
    """Raw filters -> reconcile -> status filter -> sort."""
    filtered = filter_and_sort(raw_logs, filters, "oldest", interns)
    merged = apply_status_filter(reconcile(filtered), filters.status)
    return sort_records(merged, sort_by, interns)


def load_raw_logs(filters, limit=500, newest_first=True):
    """
    Fetch collaborator: raw records matching the filters, intern summaries joined in.
    The limit keeps the newest records, or the oldest when newest_first is False.
    """
    company_ids = Intern.ids_for_company(filters.company) if filters.company else None
    query = build_mongo_query(filters, company_ids)
    if query is None:
        return [], []
    direction = -1 if newest_first else 1
    raw = DailyLog.fetch(query, sort=[("date", direction), ("createdAt", direction)], limit=limit)
    interns = Intern.find_many({record.get("internId") for record in raw if record.get("internId") is not None})
    return attach_interns(raw, interns), interns


def load_merged_logs(filters, sort_by="newest", limit=500):
    sort_by = parse_sort(sort_by)
    raw, interns = load_raw_logs(filters, limit, newest_first=(sort_by != "oldest"))
    return query_merged_logs(raw, filters, sort_by, interns), raw, interns
