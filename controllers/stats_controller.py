from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request

from models.interns import Intern
from utils.dates import day_key, to_day, utcnow
from utils.db import to_object_id
from utils.filters import LogFilters, load_merged_logs
from utils.metrics import compute_metrics

stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")

RECENT_DAYS = 7


def _count_interns(filters):
    """Interns in scope of the same intern / company filters as the logs."""
    query = {}
    if filters.intern_id:
        query["_id"] = to_object_id(filters.intern_id, "internId")
    if filters.company:
        query["company"] = filters.company
    return Intern.collection().count_documents(query)


@stats_bp.route("", methods=["GET"])
def get_stats():
    filters = LogFilters.from_args(request.args)
    as_of = to_day(request.args.get("asOf") or utcnow(), "asOf")
    limit = current_app.config["LOG_FETCH_LIMIT"]

    merged, raw, interns = load_merged_logs(filters, "newest", limit)
    metrics = compute_metrics(merged, as_of, interns)

    today = day_key(as_of)
    recent_start = day_key(as_of - timedelta(days=RECENT_DAYS))
    metrics.update({
        "totalInterns": _count_interns(filters),
        "todayLogs": sum(1 for item in merged if item.date == today),
        "recentLogs": sum(1 for item in merged if recent_start <= item.date <= today),
        "asOf": today,
        "truncated": len(raw) >= limit,
    })
    return jsonify({"stats": metrics})
