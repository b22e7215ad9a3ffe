"""Work order and invoice PDFs (reportlab)."""

from __future__ import annotations

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from paintops.config import settings
from paintops.core.billing.money import format_currency, format_plain
from paintops.core.billing.schemas import JobBillingBreakdown

WORK_ORDER_FLAGS = [
    ("is_occupied", "Unit occupied"),
    ("is_full_paint", "Full paint"),
    ("painted_patio", "Patio"),
    ("painted_garage", "Garage"),
    ("painted_cabinets", "Cabinets"),
    ("painted_crown_molding", "Crown molding"),
    ("painted_front_door", "Front door"),
    ("painted_ceilings", "Ceilings"),
    ("has_accent_wall", "Accent wall"),
    ("has_extra_charges", "Extra charges"),
]

_TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f2937")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
    ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#f3f4f6")),
])


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="Right", parent=styles["Normal"], alignment=TA_RIGHT))
    return styles


def _p(text, style) -> Paragraph:
    return Paragraph(escape(str(text)) if text not in (None, "") else "-", style)


def _header(details: dict, title: str, styles) -> list:
    prop = details.get("property") or {}
    address = ", ".join(
        p for p in (prop.get("address"), prop.get("city"), prop.get("state"), prop.get("zip")) if p
    )
    header = Table(
        [[
            Paragraph(f"<b>{escape(settings.FROM_NAME)}</b>", styles["Normal"]),
            Paragraph(
                f"<b>{escape(title)}</b><br/>{escape(details.get('job_number') or '')}",
                styles["Right"],
            ),
        ]],
        colWidths=[300, 200],
    )
    return [
        header,
        Spacer(1, 16),
        Paragraph("<b>Property</b>", styles["Heading3"]),
        _p(prop.get("property_name"), styles["Normal"]),
        _p(address, styles["Normal"]),
        _p(f"Unit {details.get('unit_number') or '-'}", styles["Normal"]),
        Spacer(1, 12),
    ]


def _billing_table(breakdown: JobBillingBreakdown, show_sub_pay: bool) -> Table:
    columns = ["Description", "Qty", "Rate", "Amount"]
    if show_sub_pay:
        columns.append("Sub Pay")
    rows = [columns]

    if breakdown.base is not None:
        row = ["Base", "1", format_currency(breakdown.base.bill_amount), format_currency(breakdown.base.bill_amount)]
        if show_sub_pay:
            row.append(format_currency(breakdown.base.sub_pay_amount))
        rows.append(row)

    for line in breakdown.lines:
        row = [
            line.label,
            format_plain(line.quantity),
            format_currency(line.rate_bill),
            format_currency(line.amount_bill),
        ]
        if show_sub_pay:
            row.append(format_currency(line.amount_sub))
        rows.append(row)

    total = ["Total", "", "", format_currency(breakdown.totals.bill_total)]
    if show_sub_pay:
        total.append(format_currency(breakdown.totals.sub_pay_total))
    rows.append(total)

    widths = [220, 50, 80, 80] + ([70] if show_sub_pay else [])
    table = Table(rows, colWidths=widths)
    table.setStyle(_TABLE_STYLE)
    return table


def _build(story: list) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=LETTER, rightMargin=40, leftMargin=40, topMargin=40, bottomMargin=40
    )
    doc.build(story)
    return buffer.getvalue()


def render_work_order_pdf(details: dict, breakdown: JobBillingBreakdown) -> bytes:
    styles = _styles()
    story = _header(details, "WORK ORDER", styles)
    work_order = details.get("work_order") or {}

    assignee = details.get("assigned_to") or {}
    story.append(_p(f"Subcontractor: {assignee.get('full_name') or 'Unassigned'}", styles["Normal"]))
    story.append(_p(f"Job type: {details.get('job_type') or '-'}", styles["Normal"]))
    story.append(Spacer(1, 12))

    done = [label for key, label in WORK_ORDER_FLAGS if work_order.get(key)]
    story.append(Paragraph("<b>Scope</b>", styles["Heading3"]))
    story.append(_p(", ".join(done) if done else "No items recorded", styles["Normal"]))
    if work_order.get("additional_comments"):
        story.append(_p(work_order["additional_comments"], styles["Normal"]))
    story.append(Spacer(1, 12))

    story.append(Paragraph("<b>Billing</b>", styles["Heading3"]))
    story.append(_billing_table(breakdown, show_sub_pay=True))
    for warning in breakdown.warnings:
        story.append(_p(warning, styles["Italic"]))
    return _build(story)


def render_invoice_pdf(details: dict, breakdown: JobBillingBreakdown) -> bytes:
    styles = _styles()
    story = _header(details, "INVOICE", styles)
    prop = details.get("property") or {}

    story.append(Paragraph("<b>Bill To</b>", styles["Heading3"]))
    story.append(_p(prop.get("ap_name"), styles["Normal"]))
    story.append(_p(prop.get("ap_email"), styles["Normal"]))
    story.append(Spacer(1, 12))
    story.append(_billing_table(breakdown, show_sub_pay=False))
    return _build(story)
