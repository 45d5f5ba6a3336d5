"""Report files served by the sandbox backend: class workbook (xlsx) and student statement (pdf)."""

import io
import re
from typing import List, Sequence

from openpyxl import Workbook
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from feeledger.api.v1.student_payments.schemas import Payment, StudentSummaryRow
from feeledger.ledger.state import derive_status

CLASS_REPORT_HEADERS = ["Roll No", "Student", "Class", "Division", "Total Fees", "Paid", "Remaining", "Status"]

# Characters Excel rejects in sheet titles.
_SHEET_TITLE_INVALID = re.compile(r"[\\/?*\[\]:]")


def build_class_workbook(class_label: str, rows: Sequence[StudentSummaryRow]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = (_SHEET_TITLE_INVALID.sub("-", class_label) or "Class")[:31]
    ws.append(CLASS_REPORT_HEADERS)
    for r in rows:
        ws.append([
            r.roll_no,
            r.student_name,
            r.class_name,
            r.division or "",
            float(r.total_fees),
            float(r.paid_amount),
            float(r.total_fees - r.paid_amount),
            derive_status(r.paid_amount, r.total_fees).value,
        ])

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


def build_student_statement(row: StudentSummaryRow, payments: List[Payment]) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    x, y = 20 * mm, height - 20 * mm

    c.setFont("Helvetica-Bold", 14)
    c.drawString(x, y, "Fee Statement")
    y -= 8 * mm
    c.setFont("Helvetica", 11)
    c.drawString(x, y, f"Name: {row.student_name}")
    y -= 6 * mm
    c.drawString(x, y, f"Roll No: {row.roll_no}    Class: {row.class_name} {row.division or ''}")
    y -= 6 * mm
    c.drawString(x, y, f"Total: {float(row.total_fees):,.2f}    Paid: {float(row.paid_amount):,.2f}")
    y -= 10 * mm

    c.setFont("Helvetica-Bold", 12)
    c.drawString(x, y, "Payments")
    y -= 7 * mm
    c.setFont("Helvetica", 10)
    c.drawString(x, y, "Date")
    c.drawString(x + 40 * mm, y, "Amount")
    c.drawString(x + 80 * mm, y, "Mode")
    c.drawString(x + 120 * mm, y, "Reference")
    y -= 5 * mm
    c.line(x, y, width - 20 * mm, y)
    y -= 5 * mm

    for p in payments:
        if y < 25 * mm:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = height - 20 * mm
        c.drawString(x, y, p.date.strftime("%Y-%m-%d"))
        c.drawRightString(x + 70 * mm, y, f"{float(p.amount):,.2f}")
        c.drawString(x + 80 * mm, y, p.payment_mode.value)
        c.drawString(x + 120 * mm, y, p.transaction_id or "")
        y -= 6 * mm

    c.showPage()
    c.save()
    return buffer.getvalue()
