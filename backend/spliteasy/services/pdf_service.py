from datetime import datetime, timezone
from decimal import Decimal
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from spliteasy.models.receipt import Receipt
from spliteasy.utils.allocation import compute_participant_breakdown, get_item_total
from spliteasy.utils.currency_utils import format_currency

BORDER = colors.HexColor("#BFBFBF")
HEADER_BG = colors.HexColor("#F5F5F5")
TEXT = colors.HexColor("#333333")
MUTED = colors.HexColor("#7F8C8D")

_base_style = ParagraphStyle(name="SplitBase", fontName="Helvetica", fontSize=10, leading=14, textColor=TEXT)
_cell_style = ParagraphStyle(name="SplitCell", parent=_base_style, fontSize=9, leading=11)
_heading_style = ParagraphStyle(name="SplitHeading", parent=_base_style, fontName="Helvetica-Bold", fontSize=15, spaceAfter=8)
_name_style = ParagraphStyle(name="SplitName", parent=_base_style, fontName="Helvetica-Bold", fontSize=13, spaceAfter=4, spaceBefore=8)
_footer_style = ParagraphStyle(name="SplitFooter", parent=_base_style, fontSize=8, textColor=MUTED)


def _quantity_label(quantity) -> str:
    return f"{Decimal(quantity).normalize():f}"


def _items_table(receipt: Receipt) -> Table:
    names = {p.id: p.name for p in receipt.participants}
    rows = [["Description", "Assigned To", "Qty", "Price", "Total"]]
    for item in receipt.items:
        assigned = ", ".join(
            names[a.participant_id] for a in item.assignments if a.participant_id in names
        )
        rows.append([
            Paragraph(escape(item.description or "-"), _cell_style),
            Paragraph(escape(assigned), _cell_style),
            _quantity_label(item.quantity),
            format_currency(item.price),
            format_currency(get_item_total(item)),
        ])

    table = Table(rows, hAlign="LEFT", colWidths=[70 * mm, 45 * mm, 15 * mm, 25 * mm, 25 * mm], repeatRows=1)
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("LINEBELOW", (0, 0), (-1, 0), 1.5, colors.HexColor("#999999")),
        ("GRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 5),
    ]))
    return table


def _share_table(share: dict) -> Table:
    rows = [
        ["Items:", format_currency(share["items_total"])],
        ["Tax share:", format_currency(share["tax_share"])],
        ["Tip share:", format_currency(share["tip_share"])],
        ["Total:", format_currency(share["total"])],
    ]
    table = Table(rows, hAlign="LEFT", colWidths=[90 * mm, 90 * mm])
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
    ]))
    return table


def build_receipt_pdf(receipt: Receipt) -> BytesIO:
    """
    A4 export of a saved split: the items table followed by the cost
    breakdown. Uses compute_participant_breakdown, the same function behind
    the breakdown endpoint, so exported and on-screen totals agree.
    """
    buffer = BytesIO()
    title = receipt.name or "Receipt"
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        title=f"SplitEasy - {title}",
        author="SplitEasy",
    )

    elements = [Paragraph(escape(title), _heading_style), _items_table(receipt), Spacer(1, 10)]

    elements.append(Paragraph("Cost Breakdown", _heading_style))
    breakdown = compute_participant_breakdown(receipt, receipt.participants)
    for share in breakdown["participants"]:
        elements.append(Paragraph(escape(share["participant"].name), _name_style))
        elements.append(_share_table(share))
    if breakdown["show_unassigned"]:
        elements.append(Paragraph("Unassigned", _name_style))
        elements.append(_share_table(breakdown["unassigned"]))

    generated_at = datetime.now(timezone.utc).strftime("%d %b %Y %H:%M UTC")
    elements.append(Spacer(1, 16))
    elements.append(Paragraph(f"Exported by SplitEasy on {generated_at}", _footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer
