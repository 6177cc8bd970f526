import logging

from flask import Blueprint, current_app, jsonify, request

from models.daily_log import DailyLog
from models.interns import Intern
from utils.db import serialize
from utils.errors import NotFoundError
from utils.filters import LogFilters, load_merged_logs, parse_sort
from utils.images import delete_log_images
from utils.reconcile import reconcile

logger = logging.getLogger(__name__)

logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


# ==========================================================
# LIST LOGS (FILTERED, RECONCILED)
# ==========================================================
@logs_bp.route("", methods=["GET"])
def list_logs():
    filters = LogFilters.from_args(request.args)
    sort_by = parse_sort(request.args.get("sortBy"))
    limit = current_app.config["LOG_FETCH_LIMIT"]

    merged, raw, _ = load_merged_logs(filters, sort_by, limit)
    return jsonify({
        "logs": serialize([item.to_dict() for item in merged]),
        "count": len(merged),
        "rawCount": len(raw),
        "truncated": len(raw) >= limit,
    })


# ==========================================================
# LOG DETAIL
# ==========================================================
@logs_bp.route("/<log_id>", methods=["GET"])
def get_log(log_id):
    log = DailyLog.find_by_id(log_id)
    if not log:
        raise NotFoundError("Log not found")

    intern = Intern.find_by_id(log["internId"]) if log.get("internId") else None
    log["intern"] = Intern.summary(intern)

    # The day view also covers any sibling record left by a duplicate write
    siblings = [log]
    if log.get("internId") and log.get("date"):
        siblings = DailyLog.find_for_day(log["internId"], log["date"])
    merged = reconcile(siblings)
    day = merged[0].to_dict() if merged else None

    return jsonify({"log": serialize(log), "day": serialize(day)})


# ==========================================================
# DELETE LOG
# ==========================================================
@logs_bp.route("/<log_id>", methods=["DELETE"])
def delete_log(log_id):
    log = DailyLog.find_by_id(log_id)
    if not log:
        raise NotFoundError("Log not found")

    DailyLog.delete(log["_id"])
    delete_log_images(log, current_app.config["UPLOAD_FOLDER"])

    logger.info("Deleted log %s (intern %s)", log["_id"], log.get("internId"))
    return jsonify({"success": True})
