from datetime import datetime

import pytest
from bson import ObjectId

from utils.errors import ValidationError
from utils.filters import (
    LogFilters,
    apply_status_filter,
    build_mongo_query,
    filter_and_sort,
    load_merged_logs,
    parse_sort,
    query_merged_logs,
    sort_records,
)
from utils.reconcile import reconcile

X = ObjectId()
Y = ObjectId()
INTERNS = [
    {"_id": X, "name": "Ana Reyes", "company": "Acme"},
    {"_id": Y, "name": "ben cruz", "company": "Globex"},
]


def _ts(day, hour):
    return datetime.fromisoformat(f"{day}T{hour:02d}:00:00")


@pytest.fixture
def raw(entry, raw_log, complete_day):
    return [
        raw_log(X, "2024-01-10", am=entry("AM", _ts("2024-01-10", 8)), created=datetime(2024, 1, 10, 8)),
        raw_log(X, "2024-01-10", pm=entry("PM", _ts("2024-01-10", 17)), created=datetime(2024, 1, 10, 17)),
        raw_log(X, "2024-01-11", am=entry("AM", _ts("2024-01-11", 8))),
        complete_day(Y, "2024-01-11"),
        raw_log(Y, "2024-01-12", pm=entry("PM", _ts("2024-01-12", 17))),
    ]


def test_filters_validate_input():
    with pytest.raises(ValidationError):
        LogFilters(status="late")
    with pytest.raises(ValidationError):
        LogFilters(start_date="2024-01-12", end_date="2024-01-10")
    with pytest.raises(ValidationError):
        LogFilters.from_args({"internId": "nope"})
    with pytest.raises(ValidationError):
        parse_sort("random")


def test_from_args_reads_query_parameters():
    filters = LogFilters.from_args({
        "internId": str(X), "companyId": "Acme", "startDate": "2024-01-01", "endDate": "2024-01-31",
        "status": "complete",
    })
    assert filters.intern_id == str(X)
    assert filters.company == "Acme"
    assert filters.start_date.isoformat() == "2024-01-01"
    assert filters.status == "complete"


def test_date_range_is_inclusive(raw):
    kept = filter_and_sort(raw, LogFilters(start_date="2024-01-11", end_date="2024-01-11"))
    assert len(kept) == 2
    assert all(r["date"] == datetime(2024, 1, 11) for r in kept)


def test_intern_and_company_filters(raw):
    by_intern = filter_and_sort(raw, LogFilters(intern_id=X))
    assert {r["internId"] for r in by_intern} == {X}

    by_company = filter_and_sort(raw, LogFilters(company="Globex"), interns=INTERNS)
    assert {r["internId"] for r in by_company} == {Y}


def test_status_is_decided_after_reconciliation(raw):
    # Each half of the split day looks incomplete on its own
    merged = query_merged_logs(raw, LogFilters(status="complete"), "oldest", INTERNS)
    assert [(m.intern_id, m.date) for m in merged] == [(str(X), "2024-01-10"), (str(Y), "2024-01-11")]

    incomplete = query_merged_logs(raw, LogFilters(status="incomplete"), "newest", INTERNS)
    assert [m.date for m in incomplete] == ["2024-01-12", "2024-01-11"]


def test_am_only_and_pm_only(raw):
    merged = reconcile(raw)
    assert [m.date for m in apply_status_filter(merged, "am-only")] == ["2024-01-11"]
    assert [m.date for m in apply_status_filter(merged, "pm-only")] == ["2024-01-12"]
    assert len(apply_status_filter(merged, "all")) == 4


def test_sort_by_intern_name_breaks_ties_by_newest_date(raw):
    merged = sort_records(reconcile(raw), "intern-name", INTERNS)
    assert [(m.intern_id, m.date) for m in merged] == [
        (str(X), "2024-01-11"), (str(X), "2024-01-10"),
        (str(Y), "2024-01-12"), (str(Y), "2024-01-11"),
    ]

    desc = sort_records(reconcile(raw), "intern-name-desc", INTERNS)
    assert [m.intern_id for m in desc] == [str(Y), str(Y), str(X), str(X)]


def test_newest_and_oldest_sorts(raw):
    newest = sort_records(raw, "newest")
    assert newest[0]["date"] == datetime(2024, 1, 12)
    oldest = sort_records(raw, "oldest")
    assert oldest[0]["date"] == datetime(2024, 1, 10)


def test_mongo_query_never_filters_on_status():
    query = build_mongo_query(LogFilters(intern_id=X, start_date="2024-01-01", status="complete"))
    assert query == {"internId": X, "date": {"$gte": datetime(2024, 1, 1)}}


def test_mongo_query_for_company_without_interns_matches_nothing():
    assert build_mongo_query(LogFilters(company="Nobody"), []) is None
    assert build_mongo_query(LogFilters(company="Acme", intern_id=X), [Y]) is None
    assert build_mongo_query(LogFilters(company="Acme"), [X]) == {"internId": {"$in": [X]}}


def test_load_merged_logs_reads_from_mongo(db, intern_doc, entry):
    ana = intern_doc(name="Ana Reyes", student_id="S-1", company="Acme")
    ben = intern_doc(name="Ben Cruz", student_id="S-2", company="Globex")
    db.daily_logs.insert_many([
        {"internId": ana["_id"], "date": datetime(2024, 1, 10), "createdAt": datetime(2024, 1, 10),
         "amLog": entry("AM", _ts("2024-01-10", 8)), "pmLog": entry("PM", _ts("2024-01-10", 17))},
        {"internId": ben["_id"], "date": datetime(2024, 1, 10), "createdAt": datetime(2024, 1, 10),
         "amLog": entry("AM", _ts("2024-01-10", 8))},
    ])

    merged, raw, interns = load_merged_logs(LogFilters(company="Acme"))

    assert len(raw) == 1
    assert [m.intern_name for m in merged] == ["Ana Reyes"]
    assert "password" not in merged[0].intern
    assert merged[0].is_complete


def test_fetch_limit_keeps_the_window_matching_the_sort(db, intern_doc, complete_day):
    ana = intern_doc(name="Ana Reyes", student_id="S-1")
    db.daily_logs.insert_many([complete_day(ana["_id"], f"2024-01-1{d}") for d in range(5)])

    oldest, raw, _ = load_merged_logs(LogFilters(), "oldest", limit=2)
    assert len(raw) == 2
    assert [m.date for m in oldest] == ["2024-01-10", "2024-01-11"]

    newest, _, _ = load_merged_logs(LogFilters(), "newest", limit=2)
    assert [m.date for m in newest] == ["2024-01-14", "2024-01-13"]
