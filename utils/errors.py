import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AttendanceError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationError(AttendanceError):
    """Missing or malformed input; nothing was written."""

    status_code = 400

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(AttendanceError):
    status_code = 404


class DuplicateSubmissionError(AttendanceError):
    """The AM or PM slot for this intern and day is already filled."""

    status_code = 400

    def __init__(self, period, message=None):
        if message is None:
            label = "Time In" if period == "AM" else "Time Out"
            message = f"You've already logged {label} for this day."
        super().__init__(message)
        self.period = period


class ConflictError(AttendanceError):
    """Duplicate-key violation at the storage boundary (racing writers)."""

    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({"error": "Uploaded file is too large"}), 413

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500
