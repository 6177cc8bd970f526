import logging
from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request

from models.daily_log import DailyLog
from models.interns import Intern
from utils.dates import utcnow
from utils.db import serialize
from utils.errors import NotFoundError, ValidationError
from utils.images import delete_log_images

logger = logging.getLogger(__name__)

interns_bp = Blueprint("interns", __name__, url_prefix="/api/interns")

ACTIVITY_STATUSES = ("all", "with-logs", "without-logs", "active", "inactive")
SORTS = ("created-newest", "created-oldest", "name-asc", "name-desc", "most-active")
ACTIVE_WINDOW_DAYS = 30


def _ids_with_logs(intern_ids, since=None):
    query = {"internId": {"$in": intern_ids}}
    if since is not None:
        query["date"] = {"$gte": since}
    return {str(oid) for oid in DailyLog.collection().distinct("internId", query)}


def _filter_by_activity(interns, activity_status):
    if activity_status == "all":
        return interns
    ids = [intern["_id"] for intern in interns]
    if activity_status in ("with-logs", "without-logs"):
        logged = _ids_with_logs(ids)
        keep = activity_status == "with-logs"
    else:
        logged = _ids_with_logs(ids, since=utcnow() - timedelta(days=ACTIVE_WINDOW_DAYS))
        keep = activity_status == "active"
    return [intern for intern in interns if (str(intern["_id"]) in logged) == keep]


def _sort_interns(interns, sort_by):
    if sort_by in ("name-asc", "name-desc"):
        return sorted(interns, key=lambda i: (i.get("name") or "").lower(), reverse=sort_by == "name-desc")
    if sort_by == "most-active":
        counts = {}
        pipeline = [
            {"$match": {"internId": {"$in": [intern["_id"] for intern in interns]}}},
            {"$group": {"_id": "$internId", "count": {"$sum": 1}}},
        ]
        for row in DailyLog.collection().aggregate(pipeline):
            counts[str(row["_id"])] = row["count"]
        return sorted(interns, key=lambda i: counts.get(str(i["_id"]), 0), reverse=True)
    return sorted(
        interns,
        key=lambda i: i.get("createdAt") or datetime.min,
        reverse=sort_by == "created-newest",
    )


# ==========================================================
# LIST INTERNS
# ==========================================================
@interns_bp.route("", methods=["GET"])
def list_interns():
    activity_status = request.args.get("activityStatus") or "all"
    sort_by = request.args.get("sortBy") or "created-newest"
    if activity_status not in ACTIVITY_STATUSES:
        raise ValidationError("Unknown activityStatus", field="activityStatus")
    if sort_by not in SORTS:
        raise ValidationError("Unknown sortBy", field="sortBy")

    interns = Intern.search(request.args.get("search"), request.args.get("company"))
    interns = _filter_by_activity(interns, activity_status)
    interns = _sort_interns(interns, sort_by)
    return jsonify({"interns": serialize([Intern.summary(intern) for intern in interns])})


# ==========================================================
# ADD INTERN
# ==========================================================
@interns_bp.route("", methods=["POST"])
def create_intern():
    data = request.get_json(silent=True) or {}
    Intern.validate_fields(data)

    intern = Intern(
        name=data["name"].strip(),
        email=data["email"],
        student_id=data["studentId"],
        password=current_app.config["DEFAULT_INTERN_PASSWORD"],
        company=data["company"].strip(),
        company_address=data["companyAddress"].strip(),
        phone=(data.get("phone") or "").strip() or None,
        must_change_password=True,
    )
    result = intern.save()
    logger.info("Created intern %s (%s)", result.inserted_id, intern.student_id)

    created = Intern.find_by_id(result.inserted_id)
    return jsonify({"success": True, "intern": serialize(Intern.summary(created))}), 201


# ==========================================================
# INTERN DETAIL
# ==========================================================
@interns_bp.route("/<intern_id>", methods=["GET"])
def get_intern(intern_id):
    intern = Intern.find_by_id(intern_id)
    if not intern:
        raise NotFoundError("Intern not found")
    data = Intern.summary(intern)
    data["logsCount"] = DailyLog.count_for_intern(intern["_id"])
    return jsonify({"intern": serialize(data)})


# ==========================================================
# EDIT INTERN
# ==========================================================
@interns_bp.route("/<intern_id>", methods=["PUT"])
def update_intern(intern_id):
    data = request.get_json(silent=True) or {}
    updated = Intern.update(intern_id, data)
    if not updated:
        raise NotFoundError("Intern not found")
    return jsonify({"success": True, "intern": serialize(Intern.summary(updated))})


# ==========================================================
# DELETE INTERN (CASCADES TO LOGS)
# ==========================================================
@interns_bp.route("/<intern_id>", methods=["DELETE"])
def delete_intern(intern_id):
    intern = Intern.delete(intern_id)
    if not intern:
        raise NotFoundError("Intern not found")
    logs = DailyLog.find_for_intern(intern["_id"])
    result = DailyLog.delete_for_intern(intern["_id"])

    folder = current_app.config["UPLOAD_FOLDER"]
    images = sum(delete_log_images(log, folder) for log in logs)
    logger.info("Deleted intern %s, %d log(s) and %d image(s)", intern["_id"], result.deleted_count, images)
    return jsonify({"success": True, "deletedLogs": result.deleted_count})
