import json
import random
from datetime import datetime

from bson import ObjectId

from utils.metrics import (
    backfill,
    completion_rate,
    compute_metrics,
    compute_streaks,
    day_labels,
    hours_summary,
    lateness_counts,
)
from utils.reconcile import reconcile

X = ObjectId()
Y = ObjectId()


def _ts(day, hour, minute=0):
    return datetime.fromisoformat(f"{day}T{hour:02d}:{minute:02d}:00")


def test_empty_set_has_zero_completion():
    metrics = compute_metrics([], "2024-01-10")
    assert metrics["totalLogs"] == 0
    assert metrics["completionRate"] == 0
    assert isinstance(metrics["completionRate"], float)
    assert metrics["hoursWorked"]["averageHours"] == 0.0
    assert metrics["streaks"] == {}
    assert metrics["dailyTrends"] == []


def test_completion_rate_bounds():
    assert completion_rate(0, 0) == 0
    assert isinstance(completion_rate(0, 0), float)
    assert completion_rate(3, 3) == 100
    assert completion_rate(1, 3) == 33.33
    assert 0 <= completion_rate(2, 7) <= 100


def test_streak_example(complete_day, entry, raw_log):
    raw = [complete_day(X, f"2024-01-0{d}") for d in (1, 2, 3, 5)]
    raw.append(raw_log(X, "2024-01-04", am=entry("AM", _ts("2024-01-04", 8))))

    streaks = compute_streaks(reconcile(raw), "2024-01-05")

    assert streaks[str(X)] == {"current": 1, "longest": 3}


def test_current_streak_falls_back_to_latest_day_with_data(complete_day):
    merged = reconcile([complete_day(X, "2024-01-01"), complete_day(X, "2024-01-02")])
    assert compute_streaks(merged, "2024-01-09")[str(X)] == {"current": 2, "longest": 2}


def test_current_streak_ignores_days_after_as_of(complete_day):
    merged = reconcile([complete_day(X, "2024-01-01"), complete_day(X, "2024-01-02"), complete_day(X, "2024-01-03")])
    assert compute_streaks(merged, "2024-01-02")[str(X)]["current"] == 2


def test_incomplete_as_of_day_breaks_current_streak(complete_day, entry, raw_log):
    merged = reconcile([
        complete_day(X, "2024-01-01"),
        raw_log(X, "2024-01-02", pm=entry("PM", _ts("2024-01-02", 17))),
    ])
    assert compute_streaks(merged, "2024-01-02")[str(X)] == {"current": 0, "longest": 1}


def test_streak_grows_by_one_when_a_day_is_prepended(complete_day):
    days = ["2024-01-04", "2024-01-05"]
    before = compute_streaks(reconcile([complete_day(X, d) for d in days]), "2024-01-05")
    after = compute_streaks(reconcile([complete_day(X, d) for d in ["2024-01-03"] + days]), "2024-01-05")
    assert after[str(X)]["current"] == before[str(X)]["current"] + 1


def test_gap_day_resets_current_streak(complete_day):
    merged = reconcile([complete_day(X, d) for d in ("2024-01-01", "2024-01-02", "2024-01-04")])
    assert compute_streaks(merged, "2024-01-04")[str(X)] == {"current": 1, "longest": 2}


def test_streaks_are_per_intern(complete_day):
    merged = reconcile([complete_day(X, "2024-01-01"), complete_day(Y, "2024-01-01"), complete_day(Y, "2024-01-02")])
    streaks = compute_streaks(merged, "2024-01-02")
    assert streaks[str(X)]["current"] == 1
    assert streaks[str(Y)]["current"] == 2


def test_lateness_counts_each_period_independently(entry, raw_log):
    merged = reconcile([
        raw_log(X, "2024-01-10", am=entry("AM", _ts("2024-01-10", 9, 30), late=True),
                pm=entry("PM", _ts("2024-01-10", 17))),
        raw_log(X, "2024-01-11", am=entry("AM", _ts("2024-01-11", 8)),
                pm=entry("PM", _ts("2024-01-11", 19), late=True)),
        raw_log(Y, "2024-01-11", am=entry("AM", _ts("2024-01-11", 10), late=True)),
    ])
    assert lateness_counts(merged) == {"amLate": 2, "pmLate": 1, "onTime": 2}


def test_hours_worked_excludes_anomalies(entry, raw_log, complete_day):
    merged = reconcile([
        complete_day(X, "2024-01-10"),
        # Time Out before Time In
        raw_log(X, "2024-01-11", am=entry("AM", _ts("2024-01-11", 17)), pm=entry("PM", _ts("2024-01-11", 8))),
        # 24h or more
        raw_log(X, "2024-01-12", am=entry("AM", _ts("2024-01-12", 0)), pm=entry("PM", _ts("2024-01-13", 0))),
        raw_log(X, "2024-01-14", am=entry("AM", _ts("2024-01-14", 8)), pm=entry("PM", _ts("2024-01-14", 12))),
        raw_log(X, "2024-01-15", am=entry("AM", _ts("2024-01-15", 8))),
    ])
    assert hours_summary(merged) == {
        "totalHours": 13.0,
        "averageHours": 6.5,
        "countedDays": 2,
        "excludedDays": 2,
    }


def test_trend_series_omit_empty_buckets(complete_day, entry, raw_log):
    merged = reconcile([
        complete_day(X, "2024-01-01"),
        raw_log(Y, "2024-01-01", am=entry("AM", _ts("2024-01-01", 8))),
        complete_day(X, "2024-01-03"),
        complete_day(X, "2024-02-01"),
    ])
    metrics = compute_metrics(merged, "2024-02-01")

    assert metrics["dailyTrends"] == [
        {"bucketLabel": "2024-01-01", "count": 2, "complete": 1},
        {"bucketLabel": "2024-01-03", "count": 1, "complete": 1},
        {"bucketLabel": "2024-02-01", "count": 1, "complete": 1},
    ]
    assert [row["bucketLabel"] for row in metrics["weeklyActivity"]] == ["2024-W01", "2024-W05"]
    assert metrics["monthlyActivity"] == [
        {"bucketLabel": "2024-01", "count": 3, "complete": 2},
        {"bucketLabel": "2024-02", "count": 1, "complete": 1},
    ]
    assert metrics["heatmapData"][0] == {"bucketLabel": "2024-01-01", "count": 2}


def test_backfill_zero_fills_requested_labels():
    series = [{"bucketLabel": "2024-01-02", "count": 3, "complete": 1}]
    filled = backfill(series, day_labels("2024-01-01", "2024-01-03"))
    assert filled == [
        {"bucketLabel": "2024-01-01", "count": 0, "complete": 0},
        {"bucketLabel": "2024-01-02", "count": 3, "complete": 1},
        {"bucketLabel": "2024-01-03", "count": 0, "complete": 0},
    ]


def test_company_breakdown_and_intern_activity(complete_day, entry, raw_log):
    interns = [
        {"_id": X, "name": "Ana Reyes", "company": "Acme"},
        {"_id": Y, "name": "Ben Cruz", "company": "Globex"},
    ]
    merged = reconcile([
        complete_day(X, "2024-01-01"),
        complete_day(X, "2024-01-02"),
        raw_log(Y, "2024-01-02", am=entry("AM", _ts("2024-01-02", 8))),
    ])
    metrics = compute_metrics(merged, "2024-01-02", interns)

    assert metrics["companyBreakdown"] == [
        {"bucketLabel": "Acme", "count": 2, "complete": 2, "internCount": 1},
        {"bucketLabel": "Globex", "count": 1, "complete": 0, "internCount": 1},
    ]
    top = metrics["internActivity"][0]
    assert top["bucketLabel"] == "Ana Reyes"
    assert top["internId"] == str(X)
    assert top["lastActivity"] == "2024-01-02"
    assert top["currentStreak"] == 2
    assert top["longestStreak"] == 2


def test_missing_company_is_bucketed_as_unknown(complete_day):
    metrics = compute_metrics(reconcile([complete_day(X, "2024-01-01")]), "2024-01-01")
    assert metrics["companyBreakdown"][0]["bucketLabel"] == "Unknown"
    assert metrics["internActivity"][0]["bucketLabel"] == str(X)


def test_metrics_are_identical_under_shuffling(complete_day, entry, raw_log):
    raw = [
        complete_day(X, "2024-01-01", created=datetime(2024, 1, 1, 8)),
        raw_log(X, "2024-01-02", am=entry("AM", _ts("2024-01-02", 8), late=True), created=datetime(2024, 1, 2, 8)),
        raw_log(X, "2024-01-02", pm=entry("PM", _ts("2024-01-02", 16, 45)), created=datetime(2024, 1, 2, 17)),
        raw_log(Y, "2024-01-02", am=entry("AM", _ts("2024-01-02", 7, 10)), pm=entry("PM", _ts("2024-01-02", 15, 20))),
        complete_day(Y, "2024-01-09"),
        raw_log(Y, "2024-01-10", pm=entry("PM", _ts("2024-01-10", 18, 5), late=True)),
    ]
    interns = [{"_id": X, "name": "Ana", "company": "Acme"}, {"_id": Y, "name": "Ben", "company": "Acme"}]
    expected = json.dumps(compute_metrics(reconcile(raw), "2024-01-10", interns), sort_keys=False, default=str)

    rng = random.Random(7)
    for _ in range(20):
        shuffled = raw[:]
        rng.shuffle(shuffled)
        result = compute_metrics(reconcile(shuffled), "2024-01-10", list(reversed(interns)))
        assert json.dumps(result, sort_keys=False, default=str) == expected
