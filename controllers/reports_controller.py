from calendar import monthrange
from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request, send_file

from models.interns import Intern
from utils.dates import to_day, utcnow
from utils.errors import ValidationError
from utils.filters import LogFilters, load_merged_logs
from utils.reports import build_activity_report, report_to_csv, report_to_excel, report_to_pdf

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

EXPORTS = {
    "csv": (report_to_csv, "text/csv", "csv"),
    "excel": (report_to_excel, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
    "pdf": (report_to_pdf, "application/pdf", "pdf"),
}


def _report_range(args):
    today = utcnow().date()
    range_name = args.get("range") or "month"
    if range_name == "week":
        return today - timedelta(days=7), today
    if range_name == "month":
        return today.replace(day=1), today.replace(day=monthrange(today.year, today.month)[1])
    if range_name == "custom":
        if not args.get("startDate") or not args.get("endDate"):
            raise ValidationError("startDate and endDate are required for a custom range", field="startDate")
        return to_day(args["startDate"], "startDate"), to_day(args["endDate"], "endDate")
    raise ValidationError("range must be week, month or custom", field="range")


def _load_report():
    start, end = _report_range(request.args)
    filters = LogFilters(
        company=request.args.get("company") or None,
        start_date=start,
        end_date=end,
    )
    merged, _, _ = load_merged_logs(filters, "newest", current_app.config["LOG_FETCH_LIMIT"])
    interns = Intern.search(company=filters.company)
    return build_activity_report(merged, interns, start, end)


@reports_bp.route("/activity", methods=["GET"])
def activity_report():
    return jsonify({"report": _load_report()})


# ---------------- Export CSV / Excel / PDF ----------------
@reports_bp.route("/activity/export/<fmt>", methods=["GET"])
def export_activity_report(fmt):
    if fmt not in EXPORTS:
        raise ValidationError("Export format must be csv, excel or pdf", field="format")
    render, mimetype, extension = EXPORTS[fmt]
    report = _load_report()
    output = render(report)
    filename = f"internship-report-{utcnow().strftime('%Y-%m-%d')}.{extension}"
    return send_file(output, mimetype=mimetype, as_attachment=True, download_name=filename)
