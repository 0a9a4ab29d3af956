"""Certificate of Compliance rendered as a PDF with ReportLab."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

GREEN = HexColor("#107C10")
GREEN_L = HexColor("#DCFCE7")
GOLD = HexColor("#8A6D00")
GOLD_L = HexColor("#FEF3C7")
RED = HexColor("#DC2626")
RED_L = HexColor("#FEE2E2")
GREY = HexColor("#6B7280")
GREY_L = HexColor("#F9FAFB")
DARK = HexColor("#111827")
BORDER = HexColor("#D1D5DB")

GREENLIT_THRESHOLD = 90

STATUS_COLORS = {"pass": (GREEN, GREEN_L), "warn": (GOLD, GOLD_L), "fail": (RED, RED_L)}
DISCLAIMER = (
    "This certificate is a record of an automated compliance scan and does not "
    "constitute legal advice."
)


def verdict(score: int) -> str:
    return "GREENLIT" if score >= GREENLIT_THRESHOLD else "NEEDS REVISION"


def _score_hex(score: int) -> str:
    if score >= 90:
        return "#107C10"
    if score >= 60:
        return "#8A6D00"
    return "#DC2626"


def _styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "brand": ParagraphStyle("Brand", parent=base["Title"], fontSize=22, textColor=DARK, alignment=0),
        "title": ParagraphStyle("CertTitle", parent=base["Normal"], fontSize=14, textColor=DARK,
                                fontName="Helvetica-Bold", alignment=TA_RIGHT),
        "meta": ParagraphStyle("Meta", parent=base["Normal"], fontSize=8.5, textColor=GREY, alignment=TA_RIGHT),
        "verdict": ParagraphStyle("Verdict", parent=base["Normal"], fontSize=26, leading=32,
                                  fontName="Helvetica-Bold", alignment=TA_CENTER),
        "h2": ParagraphStyle("H2", parent=base["Heading2"], fontSize=12.5, textColor=DARK, spaceBefore=10),
        "body": ParagraphStyle("Body", parent=base["Normal"], fontSize=9.5, leading=14, textColor=DARK),
        "small": ParagraphStyle("Small", parent=base["Normal"], fontSize=8.5, leading=12, textColor=DARK),
        "source": ParagraphStyle("Source", parent=base["Code"], fontSize=8.5, leading=12,
                                 backColor=GREY_L, borderPadding=6, textColor=DARK),
        "footer": ParagraphStyle("Footer", parent=base["Normal"], fontSize=7.5, textColor=GREY, alignment=TA_CENTER),
    }


def _text(value: Any) -> str:
    return escape(str(value or "")).replace("\n", "<br/>")


def _metadata_rows(report: Dict[str, Any], issued_at: datetime, styles) -> List[List[Any]]:
    rows = [
        ("Timestamp", report.get("timestamp")),
        ("Analysis Type", str(report.get("analysis_type") or "").capitalize()),
        ("Campaign", report.get("campaign_name")),
        ("Influencer", report.get("influencer_handle")),
        ("Client Brand", report.get("client_brand")),
        ("Run By", report.get("user_name")),
        ("Issued", issued_at.strftime("%Y-%m-%d %H:%M UTC")),
    ]
    return [
        [Paragraph(f"<b>{label}</b>", styles["small"]), Paragraph(_text(value), styles["small"])]
        for label, value in rows
        if value
    ]


def _checks_table(checks: List[Dict[str, Any]], styles) -> Table:
    data = [[Paragraph("<b>Status</b>", styles["small"]), Paragraph("<b>Check</b>", styles["small"]),
             Paragraph("<b>Details</b>", styles["small"])]]
    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), GREY_L),
        ("GRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]
    for row, check in enumerate(checks, start=1):
        status = str(check.get("status") or "fail")
        fg, bg = STATUS_COLORS.get(status, (RED, RED_L))
        name = _text(check.get("name"))
        modality = check.get("modality")
        if modality in ("audio", "visual"):
            name += f' <font color="#5C2D91">[{modality.capitalize()}]</font>'
        data.append([
            Paragraph(f"<b>{status.upper()}</b>", ParagraphStyle(f"S{row}", parent=styles["small"], textColor=fg)),
            Paragraph(name, styles["small"]),
            Paragraph(_text(check.get("details")), styles["small"]),
        ])
        commands.append(("BACKGROUND", (0, row), (0, row), bg))
    table = Table(data, colWidths=[20 * mm, 50 * mm, 100 * mm], repeatRows=1)
    table.setStyle(TableStyle(commands))
    return table


def render_certificate_pdf(
    report: Dict[str, Any],
    certificate_id: str,
    issued_at: Optional[datetime] = None,
    image_bytes: Optional[bytes] = None,
) -> bytes:
    """Render a report snapshot as a certificate. Returns the PDF bytes."""
    issued_at = issued_at or datetime.now(timezone.utc)
    styles = _styles()
    score = int(report.get("overall_score") or 0)
    approved = score >= GREENLIT_THRESHOLD

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title="Certificate of Compliance",
        author="BrandGuard",
    )
    story: List[Any] = []

    header = Table(
        [[Paragraph("BrandGuard", styles["brand"]),
          [Paragraph("Certificate of Compliance", styles["title"]),
           Paragraph(f"ID: {_text(certificate_id)}", styles["meta"])]]],
        colWidths=[80 * mm, 90 * mm],
    )
    header.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("LINEBELOW", (0, 0), (-1, 0), 1, BORDER),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    story += [header, Spacer(1, 8 * mm)]

    fg, bg = (GREEN, GREEN_L) if approved else (RED, RED_L)
    banner = Table(
        [[Paragraph(verdict(score), ParagraphStyle("V", parent=styles["verdict"], textColor=fg))],
         [Paragraph("This document certifies that the content has been analyzed by the BrandGuard Engine.",
                    ParagraphStyle("VS", parent=styles["small"], alignment=TA_CENTER, textColor=GREY))]],
        colWidths=[170 * mm],
    )
    banner.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), bg),
        ("BOX", (0, 0), (-1, -1), 1.5, fg),
        ("TOPPADDING", (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
    ]))
    story += [banner, Spacer(1, 6 * mm)]

    score_table = Table(
        [[Paragraph(f'<font size="9" color="#6B7280">COMPLIANCE SCORE</font><br/>'
                    f'<font size="28" color="{_score_hex(score)}"><b>{score}</b></font>',
                    ParagraphStyle("Score", parent=styles["body"], alignment=TA_CENTER, leading=34)),
          Paragraph(f'<font size="9" color="#6B7280">ENGINE SUMMARY</font><br/>{_text(report.get("summary"))}',
                    styles["body"])]],
        colWidths=[45 * mm, 125 * mm],
    )
    score_table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    story += [score_table, Spacer(1, 4 * mm)]

    story.append(Paragraph("Analysis Details", styles["h2"]))
    meta = Table(_metadata_rows(report, issued_at, styles), colWidths=[35 * mm, 135 * mm])
    meta.setStyle(TableStyle([("GRID", (0, 0), (-1, -1), 0.5, BORDER), ("BACKGROUND", (0, 0), (0, -1), GREY_L)]))
    story.append(meta)

    story.append(Paragraph("Source Content", styles["h2"]))
    if image_bytes:
        img = Image(io.BytesIO(image_bytes))
        img._restrictSize(120 * mm, 70 * mm)
        story += [img, Spacer(1, 3 * mm)]
    elif report.get("analysis_type") == "video":
        story.append(Paragraph("<i>Video content analyzed; transcript below.</i>", styles["small"]))
    story.append(Paragraph(_text(report.get("source_content")), styles["source"]))

    rules = report.get("custom_rules_applied") or []
    if rules:
        story.append(Paragraph("Custom Rules Applied", styles["h2"]))
        for rule in rules:
            story.append(Paragraph(f"&bull; {_text(rule.get('text'))}", styles["body"]))

    story.append(Paragraph("Detailed Checks", styles["h2"]))
    story.append(_checks_table(report.get("checks") or [], styles))

    story += [
        Spacer(1, 8 * mm),
        Paragraph(f"&copy; {issued_at.year} BrandGuard. All rights reserved. {DISCLAIMER}", styles["footer"]),
    ]

    doc.build(story)
    return buffer.getvalue()
