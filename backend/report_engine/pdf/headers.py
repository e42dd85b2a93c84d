"""
Report, contract and entry headers drawn at the top of each record.
"""

from typing import Optional

from ..branding_config import format_footer_template, get_branding, hex_to_rgb
from ..formatters import format_date, format_datetime, format_display_datetime
from .document import BLACK, PdfDocument
from .helpers import draw_horizontal_line

LABEL_GRAY = (80, 80, 80)
META_GRAY = (100, 100, 100)

STATUS_COLORS = {
    "draft": (245, 158, 11),
    "submitted": (59, 130, 246),
    "approved": (16, 185, 129),
    "rejected": (239, 68, 68),
}
DEFAULT_STATUS_COLOR = (107, 114, 128)

ENTRY_BAR_FILL = (243, 244, 246)
ENTRY_BAR_STROKE = (209, 213, 219)


def draw_report_header(doc: PdfDocument, metadata: dict, y: float,
                       branding: Optional[dict] = None, show_logo: bool = True) -> float:
    """
    Brand line with generated time, report title, contract / client line,
    entry date and shift, then a rule.
    """
    branding = branding or get_branding()
    metadata = metadata or {}
    contract = metadata.get("contract") or {}
    left = doc.margin_left
    right = doc.width - doc.margin_right

    if show_logo:
        doc.set_font(16, "bold", hex_to_rgb(branding.get("primary_color")))
        doc.text(left, y, branding.get("brand_name") or "")

    doc.set_font(8, "normal", (128, 128, 128))
    doc.text(right, y, f"Generated: {format_datetime(metadata.get('generatedAt'))}", align="right")
    y += 8

    doc.set_font(14, "bold", BLACK)
    doc.text(left, y, branding.get("report_title") or "")
    y += 7

    if contract.get("number"):
        doc.set_font(10, "normal", BLACK)
        doc.text(left, y, f"Contract: {contract['number']}")
        y += 5

    client = contract.get("client") or contract.get("name")
    if client:
        doc.set_font(9, "normal", BLACK)
        doc.text(left, y, f"Client: {client}")
        y += 5

    entry_info = []
    if metadata.get("entryDate"):
        entry_info.append(f"Date: {format_date(metadata['entryDate'])}")
    if metadata.get("shift"):
        entry_info.append(f"Shift: {metadata['shift']}")
    if entry_info:
        doc.set_font(9, "normal", META_GRAY)
        doc.text(left, y, " | ".join(entry_info))
        y += 5

    return draw_horizontal_line(doc, y)


def draw_contract_info(doc: PdfDocument, contract: dict, y: float) -> float:
    """CONTRACT INFORMATION block: two label/value columns over four rows."""
    contract = contract or {}
    project = contract.get("project") or {}
    organization = project.get("organization") or {}
    left = doc.margin_left
    right = doc.width / 2 + 10

    doc.set_font(10, "bold", BLACK)
    doc.text(left, y, "CONTRACT INFORMATION")
    y += 6

    category = (contract.get("contract_category") or "").replace("-", " ").upper() or "-"
    rows = [
        (("Contract:", contract.get("contract_number")), ("Type:", contract.get("contract_type"))),
        (("Name:", (contract.get("contract_name") or "")[:50]), ("Category:", category)),
        (("Client:", project.get("client_name") or organization.get("name")), ("Project:", project.get("project_name"))),
        (("Period:", f"{format_date(contract.get('valid_from'))} to {format_date(contract.get('valid_until'))}"), None),
    ]

    for left_cell, right_cell in rows:
        for cell, x in ((left_cell, left), (right_cell, right)):
            if cell is None:
                continue
            label, value = cell
            doc.set_font(9, "bold", LABEL_GRAY)
            doc.text(x, y, label)
            doc.set_font(9, "normal", BLACK)
            doc.text(x + 28 if x == left else x + 22, y, value or "-")
        y += 5

    y += 2
    return draw_horizontal_line(doc, y) + 3


def draw_entry_header(doc: PdfDocument, record: dict, number: int, total: int, y: float) -> float:
    """Grey bar "Entry i of n: date" with the status in its colour on the right."""
    left = doc.margin_left
    status = (record.get("status") or "draft").lower()

    doc.rect(left, y - 4, doc.width - 40, 10, fill=ENTRY_BAR_FILL, stroke=ENTRY_BAR_STROKE)

    doc.set_font(10, "bold", BLACK)
    doc.text(left + 3, y + 2, f"Entry {number} of {total}: {format_date(record.get('entry_date'))}")

    doc.set_font(8, "bold", STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR))
    doc.text(doc.width - 22, y + 2, status.upper(), align="right")
    y += 10

    profile = record.get("created_by_profile") or {}
    info = []
    if profile.get("full_name"):
        info.append(f"Reported by: {profile['full_name']}")
    if record.get("shift"):
        info.append(f"Shift: {record['shift']}")
    if info:
        doc.set_font(8, "normal", META_GRAY)
        doc.text(left, y, "  |  ".join(info))
        y += 5

    return y + 3


def draw_header_block(doc: PdfDocument, title: Optional[str], subtitle: Optional[str], y: float) -> float:
    """Title/subtitle of a header block inside the report body."""
    y = doc.ensure_space(y, 20)

    if title:
        doc.set_font(12, "bold", BLACK)
        doc.text(doc.margin_left, y, title)
        y += 7

    if subtitle:
        doc.set_font(10, "normal", META_GRAY)
        doc.text(doc.margin_left, y, subtitle)
        y += 6

    return y + 3


def build_footer(metadata: dict, branding: Optional[dict] = None) -> dict:
    """Footer texts from the branding templates: {"left": ..., "right": ...}"""
    branding = branding or get_branding()
    metadata = metadata or {}
    contract = metadata.get("contract") or {}
    context = {
        "brand_name": branding.get("brand_name") or "",
        "organization_name": branding.get("organization_name") or "",
        "contract_number": contract.get("number") or "",
        "contract_name": contract.get("name") or "",
        "generated_at": format_display_datetime(metadata.get("generatedAt")),
    }
    return {
        "left": format_footer_template(branding.get("footer_left"), context),
        "right": format_footer_template(branding.get("footer_right"), context),
    }
