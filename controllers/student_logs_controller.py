import logging

from flask import Blueprint, current_app, jsonify, request

from models.daily_log import DailyLog
from models.interns import Intern
from models.period_entry import normalize_period, parse_number
from utils.dates import day_key, day_start, utcnow
from utils.db import serialize
from utils.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from utils.images import delete_period_image, save_period_image
from utils.lateness import is_late
from utils.metrics import compute_streaks, completion_rate, hours_summary
from utils.reconcile import reconcile, sort_merged
from utils.submission import slot_filled, submit_with_retry

logger = logging.getLogger(__name__)

student_logs_bp = Blueprint("student_logs", __name__, url_prefix="/api/students")

REQUIRED_FIELDS = ("internId", "date", "period", "latitude", "longitude")

# Set by the server, never taken from the client
SERVER_FIELDS = ("timestamp", "submittedLate", "imageUrl", "imageId", "ipAddress")


def _client_ip():
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or request.remote_addr


# ==========================================================
# SUBMIT TIME IN (AM) / TIME OUT (PM)
# ==========================================================
@student_logs_bp.route("/logs", methods=["POST"])
def submit_log():
    form = request.form
    image = request.files.get("image")
    if any(not (form.get(field) or "").strip() for field in REQUIRED_FIELDS) or image is None:
        raise ValidationError(
            "Missing required fields: internId, date, period, image, latitude, longitude"
        )

    intern = Intern.find_by_id(form["internId"])
    if not intern:
        raise NotFoundError("Intern not found")

    period = normalize_period(form["period"])
    day = day_start(form["date"])

    # Cheap early rejection before the upload; the guard re-checks atomically
    if slot_filled(DailyLog.collection(), intern["_id"], day, period):
        raise DuplicateSubmissionError(period)

    now = utcnow()
    payload = {key: value for key, value in form.items() if key not in SERVER_FIELDS}
    payload["submittedLate"] = is_late(period, now, current_app.config)
    payload["ipAddress"] = _client_ip()

    geocoder = current_app.extensions.get("reverse_geocoder")
    latitude = parse_number(form.get("latitude"), -90, 90)
    longitude = parse_number(form.get("longitude"), -180, 180)
    if geocoder and not payload.get("address") and latitude is not None and longitude is not None:
        payload["address"] = geocoder.address_for(latitude, longitude)

    folder = current_app.config["UPLOAD_FOLDER"]
    stored = save_period_image(image, intern["_id"], day_key(day), period, folder)
    payload.update(stored)

    try:
        result = submit_with_retry(intern["_id"], day, period, payload, now=now)
    except Exception:
        # Nothing was stored for this upload
        delete_period_image(stored["imageId"], folder)
        raise

    if not result.ok:
        delete_period_image(stored["imageId"], folder)
        raise result.error

    return jsonify({
        "success": True,
        "log": serialize({
            "id": result.log_id,
            "date": day_key(day),
            "period": period,
            "entry": result.entry,
        }),
    }), 201


# ==========================================================
# STUDENT'S OWN LOGS (RECONCILED)
# ==========================================================
@student_logs_bp.route("/logs", methods=["GET"])
def my_logs():
    intern_id = (request.args.get("internId") or "").strip()
    if not intern_id:
        raise ValidationError("internId is required", field="internId")

    intern = Intern.find_by_id(intern_id)
    if not intern:
        raise NotFoundError("Intern not found")

    raw = DailyLog.fetch(
        {"internId": intern["_id"]},
        sort=[("date", -1)],
        limit=current_app.config["LOG_FETCH_LIMIT"],
    )
    merged = sort_merged(reconcile(raw))
    complete = sum(1 for item in merged if item.is_complete)
    streak = compute_streaks(merged, utcnow()).get(str(intern["_id"]), {"current": 0, "longest": 0})

    return jsonify({
        "logs": serialize([item.to_dict() for item in merged]),
        "totalLogs": len(merged),
        "completeLogs": complete,
        "completionRate": completion_rate(complete, len(merged)),
        "currentStreak": streak["current"],
        "longestStreak": streak["longest"],
        "hoursWorked": hours_summary(merged),
    })


# ==========================================================
# CHANGE PASSWORD
# ==========================================================
@student_logs_bp.route("/change-password", methods=["POST"])
def change_password():
    data = request.get_json(silent=True) or {}
    student_id = (data.get("studentId") or "").strip()
    new_password = (data.get("newPassword") or "").strip()

    if not student_id:
        raise ValidationError("Student ID is required", field="studentId")
    if not new_password:
        raise ValidationError("New password is required", field="newPassword")

    intern = Intern.find_by_student_id(student_id)
    if not intern:
        raise NotFoundError("Intern not found")

    # First login: the default password was never chosen by the intern
    if not intern.get("mustChangePassword"):
        current_password = data.get("currentPassword") or ""
        if not current_password:
            raise ValidationError("Current password is required", field="currentPassword")
        if not Intern.verify_password(intern, current_password):
            raise ValidationError("Invalid current password", field="currentPassword")

    Intern.change_password(intern["_id"], new_password)
    logger.info("Password changed for intern %s", intern["_id"])
    return jsonify({"success": True, "message": "Password changed successfully"})


# ==========================================================
# PROFILE PICTURE
# ==========================================================
@student_logs_bp.route("/profile-picture", methods=["PUT"])
def update_profile_picture():
    data = request.get_json(silent=True) or {}
    intern_id = (data.get("internId") or "").strip()
    image_url = (data.get("profilePicture") or "").strip()
    if not intern_id:
        raise ValidationError("internId is required", field="internId")
    if not image_url:
        raise ValidationError("profilePicture is required", field="profilePicture")

    result = Intern.set_profile_picture(intern_id, image_url)
    if result.matched_count == 0:
        raise NotFoundError("Intern not found")
    return jsonify({"success": True, "profilePicture": image_url})
