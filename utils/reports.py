import csv
import io

from openpyxl import Workbook
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from utils.dates import utcnow
from utils.metrics import UNKNOWN_COMPANY, completion_rate, intern_index


def build_activity_report(merged, interns, start, end):
    """Summary of reconciled logs in [start, end] with a per-company breakdown."""
    index = intern_index(interns)
    companies = {}
    for doc in index.values():
        company = doc.get("company") or UNKNOWN_COMPANY
        companies.setdefault(company, {"internCount": 0, "logCount": 0, "completeCount": 0})
        companies[company]["internCount"] += 1

    for item in merged:
        intern = item.intern or index.get(item.intern_id) or {}
        company = intern.get("company") or UNKNOWN_COMPANY
        stats = companies.setdefault(company, {"internCount": 0, "logCount": 0, "completeCount": 0})
        stats["logCount"] += 1
        if item.is_complete:
            stats["completeCount"] += 1

    total = len(merged)
    complete = sum(1 for item in merged if item.is_complete)
    return {
        "totalInterns": len(index),
        "totalLogs": total,
        "completeLogs": complete,
        "incompleteLogs": total - complete,
        "completionRate": completion_rate(complete, total),
        "companyStats": [
            dict(company=company, **companies[company]) for company in sorted(companies)
        ],
        "dateRange": {"start": str(start), "end": str(end)},
    }


def _rows(report):
    generated = utcnow().strftime("%b %d, %Y %H:%M UTC")
    rows = [
        ["Internship Activity Report"],
        [f"Generated: {generated}"],
        [f"Date Range: {report['dateRange']['start']} - {report['dateRange']['end']}"],
        [],
        ["Summary"],
        ["Total Interns", report["totalInterns"]],
        ["Total Logs", report["totalLogs"]],
        ["Complete Logs", report["completeLogs"]],
        ["Incomplete Logs", report["incompleteLogs"]],
        ["Completion Rate", f"{report['completionRate']:.1f}%"],
        [],
        ["Company Breakdown"],
        ["Company", "Interns", "Logs", "Complete"],
    ]
    for stat in report["companyStats"]:
        rows.append([stat["company"], stat["internCount"], stat["logCount"], stat["completeCount"]])
    return rows


def report_to_csv(report):
    si = io.StringIO()
    cw = csv.writer(si)
    cw.writerows(_rows(report))

    output = io.BytesIO()
    output.write(si.getvalue().encode("utf-8"))
    output.seek(0)
    return output


def report_to_excel(report):
    wb = Workbook()
    ws = wb.active
    ws.title = "Activity"
    for row in _rows(report):
        ws.append(row)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def report_to_pdf(report):
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    y = height - 50

    rows = _rows(report)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(50, y, str(rows[0][0]))
    y -= 30
    c.setFont("Helvetica", 11)

    for row in rows[1:]:
        if y < 50:
            c.showPage()
            c.setFont("Helvetica", 11)
            y = height - 50
        if not row:
            y -= 10
            continue
        for column, value in enumerate(row):
            c.drawString(50 + column * 130, y, str(value))
        y -= 18

    c.save()
    buffer.seek(0)
    return buffer
