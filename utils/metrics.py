"""
Metrics engine: derived statistics over reconciled daily logs.

Everything here is a pure function of the reconciled set. Series are sorted by
a total key and float sums use math.fsum, so the output does not depend on
the order in which records arrived.
"""

import logging
import math
from collections import defaultdict
from datetime import timedelta

from utils.dates import month_key, parse_timestamp, to_day, week_key
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

UNKNOWN_COMPANY = "Unknown"
MAX_SHIFT_HOURS = 24


def completion_rate(complete, total):
    if total <= 0:
        return 0.0
    return round(complete * 100.0 / total, 2)


def hours_worked(item):
    """Hours between Time In and Time Out, or None if incomplete or implausible."""
    if not item.is_complete:
        return None
    start = parse_timestamp(item.am_log.get("timestamp"))
    end = parse_timestamp(item.pm_log.get("timestamp"))
    if start is None or end is None:
        return None
    hours = (end - start).total_seconds() / 3600.0
    # clock or sensor anomaly
    if hours <= 0 or hours >= MAX_SHIFT_HOURS:
        return None
    return hours


def _late(entry):
    return isinstance(entry, dict) and entry.get("submittedLate") is True


def lateness_counts(merged):
    counts = {"amLate": 0, "pmLate": 0, "onTime": 0}
    for item in merged:
        for entry, key in ((item.am_log, "amLate"), (item.pm_log, "pmLate")):
            if entry is None:
                continue
            if _late(entry):
                counts[key] += 1
            else:
                counts["onTime"] += 1
    return counts


def hours_summary(merged):
    counted = []
    excluded = 0
    for item in merged:
        if not item.is_complete:
            continue
        hours = hours_worked(item)
        if hours is None:
            excluded += 1
        else:
            counted.append(hours)
    total = math.fsum(counted)
    return {
        "totalHours": round(total, 2),
        "averageHours": round(total / len(counted), 2) if counted else 0.0,
        "countedDays": len(counted),
        "excludedDays": excluded,
    }


def _day_states(items):
    """{date: is_complete} for one intern's reconciled days."""
    states = {}
    for item in items:
        day = to_day(item.date)
        states[day] = states.get(day, False) or item.is_complete
    return states


def current_streak(states, as_of):
    as_of = to_day(as_of)
    if as_of in states:
        day = as_of
    else:
        earlier = [d for d in states if d <= as_of]
        if not earlier:
            return 0
        day = max(earlier)
    count = 0
    while states.get(day):
        count += 1
        day -= timedelta(days=1)
    return count


def longest_streak(states):
    longest = run = 0
    previous = None
    for day in sorted(d for d, complete in states.items() if complete):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def compute_streaks(merged, as_of):
    """{intern_id: {"current": n, "longest": n}} per intern in the set."""
    by_intern = defaultdict(list)
    for item in merged:
        by_intern[item.intern_id].append(item)

    streaks = {}
    for intern_id in sorted(by_intern):
        states = _day_states(by_intern[intern_id])
        streaks[intern_id] = {
            "current": current_streak(states, as_of),
            "longest": longest_streak(states),
        }
    return streaks


def intern_index(interns):
    if not interns:
        return {}
    if isinstance(interns, dict):
        return {str(key): value for key, value in interns.items()}
    return {str(doc["_id"]): doc for doc in interns}


def _intern_for(item, index):
    return item.intern or index.get(item.intern_id) or {}


def _series(buckets, extra=None):
    rows = []
    for label in sorted(buckets):
        bucket = buckets[label]
        row = {"bucketLabel": label, "count": bucket["count"], "complete": bucket["complete"]}
        if extra:
            row.update(extra(label, bucket))
        rows.append(row)
    return rows


def _bucket():
    return {"count": 0, "complete": 0, "interns": set()}


def trend_series(merged, key_func):
    buckets = defaultdict(_bucket)
    for item in merged:
        bucket = buckets[key_func(item)]
        bucket["count"] += 1
        bucket["complete"] += 1 if item.is_complete else 0
        bucket["interns"].add(item.intern_id)
    return buckets


def daily_trends(merged):
    return _series(trend_series(merged, lambda item: item.date))


def weekly_activity(merged):
    return _series(trend_series(merged, lambda item: week_key(item.date)))


def monthly_activity(merged):
    return _series(trend_series(merged, lambda item: month_key(item.date)))


def company_breakdown(merged, interns=None):
    index = intern_index(interns)
    buckets = trend_series(
        merged, lambda item: _intern_for(item, index).get("company") or UNKNOWN_COMPANY
    )
    rows = _series(buckets, extra=lambda label, bucket: {"internCount": len(bucket["interns"])})
    return sorted(rows, key=lambda row: (-row["count"], row["bucketLabel"]))


def heatmap_data(merged):
    return [{"bucketLabel": row["bucketLabel"], "count": row["count"]} for row in daily_trends(merged)]


def intern_activity(merged, as_of, interns=None):
    index = intern_index(interns)
    streaks = compute_streaks(merged, as_of)
    buckets = defaultdict(lambda: {"count": 0, "complete": 0, "last": None, "name": None})
    for item in merged:
        bucket = buckets[item.intern_id]
        bucket["count"] += 1
        bucket["complete"] += 1 if item.is_complete else 0
        if bucket["last"] is None or item.date > bucket["last"]:
            bucket["last"] = item.date
        name = _intern_for(item, index).get("name")
        if name and (bucket["name"] is None or name < bucket["name"]):
            bucket["name"] = name

    rows = []
    for intern_id, bucket in buckets.items():
        rows.append({
            "bucketLabel": bucket["name"] or intern_id,
            "internId": intern_id,
            "count": bucket["count"],
            "complete": bucket["complete"],
            "lastActivity": bucket["last"],
            "currentStreak": streaks[intern_id]["current"],
            "longestStreak": streaks[intern_id]["longest"],
        })
    return sorted(rows, key=lambda row: (-row["count"], row["bucketLabel"].lower(), row["internId"]))


def backfill(series, labels):
    """Zero-fill the given bucket labels, in label order; other buckets are dropped."""
    existing = {row["bucketLabel"]: row for row in series}
    return [existing.get(label, {"bucketLabel": label, "count": 0, "complete": 0}) for label in labels]


def day_labels(start, end):
    day, last = to_day(start), to_day(end)
    labels = []
    while day <= last:
        labels.append(day.isoformat())
        day += timedelta(days=1)
    return labels


def _usable(merged):
    usable = []
    for item in merged:
        try:
            to_day(item.date)
        except ValidationError:
            logger.warning("Skipping merged log with bad date %r", item.date)
            continue
        usable.append(item)
    return usable


def compute_metrics(merged, as_of, interns=None):
    merged = _usable(merged)
    total = len(merged)
    complete = sum(1 for item in merged if item.is_complete)
    return {
        "totalLogs": total,
        "completeLogs": complete,
        "incompleteLogs": total - complete,
        "completionRate": completion_rate(complete, total),
        "lateness": lateness_counts(merged),
        "hoursWorked": hours_summary(merged),
        "streaks": compute_streaks(merged, as_of),
        "dailyTrends": daily_trends(merged),
        "weeklyActivity": weekly_activity(merged),
        "monthlyActivity": monthly_activity(merged),
        "companyBreakdown": company_breakdown(merged, interns),
        "internActivity": intern_activity(merged, as_of, interns),
        "heatmapData": heatmap_data(merged),
    }
