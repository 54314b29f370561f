"""Report export: a plain-text transcript and a paginated PDF.

Both work on the analysis dict as returned by the proxy and coerce
whatever fields are present to strings; nothing is validated here.
"""
import io
from datetime import datetime
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from severity import severity_rgb

TITLE = "OsteoVision"
SUBTITLE = "X-Ray Fracture Analysis Report"
FOOTER_NOTE = "This report is for screening purposes only. Consult a healthcare professional."

BRAND_RGB = (230, 73, 78)
DISCLAIMER_RGB = (150, 100, 0)
FOOTER_RGB = (128, 128, 128)


def _s(value) -> str:
    return "" if value is None else str(value)


def _section(analysis, key) -> dict:
    value = analysis.get(key) if isinstance(analysis, dict) else None
    return value if isinstance(value, dict) else {}


def _items(container, key) -> list:
    value = container.get(key) if isinstance(container, dict) else None
    return value if isinstance(value, list) else []


def confidence_percent(confidence) -> str:
    try:
        return f"{float(confidence) * 100:.0f}%"
    except (TypeError, ValueError):
        return _s(confidence)


def report_filename(ext: str, when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return f"xray-analysis-report-{int(when.timestamp() * 1000)}.{ext}"


def _timestamp(generated_at: Optional[datetime]) -> str:
    return (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")


# ============================================================
# PLAIN TEXT
# ============================================================

def render_text(analysis: dict, generated_at: Optional[datetime] = None) -> str:
    lines = [
        f"{TITLE.upper()} - {SUBTITLE.upper()}",
        f"Generated: {_timestamp(generated_at)}",
        "",
    ]

    if analysis.get("parseError"):
        lines += [
            "The AI response could not be read as a structured report.",
            "",
            "RAW RESPONSE",
            _s(analysis.get("rawResponse")),
        ]
        return "\n".join(lines) + "\n"

    scan = _section(analysis, "scanAnalysis")
    recs = _section(analysis, "recommendations")
    referral = _section(recs, "specialistReferral")

    lines += [
        "SCAN INFORMATION",
        f"Scan Type: {_s(scan.get('scanType'))}",
        f"Body Region: {_s(scan.get('bodyRegion'))}",
        f"Image Quality: {_s(scan.get('imageQuality'))}",
        "",
        "OVERALL ASSESSMENT",
        f"Severity: {_s(analysis.get('overallSeverity'))} (Score: {_s(analysis.get('severityScore'))}/100)",
        "",
        "SUMMARY",
        _s(analysis.get("summary")),
        "",
        "FINDINGS",
    ]

    findings = _items(analysis, "findings")
    if not findings:
        lines.append("No findings reported.")
    for i, finding in enumerate(findings, 1):
        finding = finding if isinstance(finding, dict) else {"description": finding}
        lines += [
            f"{i}. {_s(finding.get('type'))}",
            f"   Location: {_s(finding.get('location'))}",
            f"   Description: {_s(finding.get('description'))}",
            f"   Severity: {_s(finding.get('severity'))} | Confidence: {confidence_percent(finding.get('confidence'))}",
        ]

    lines += [
        "",
        "SPECIALIST REFERRAL",
        f"Recommended: {_s(referral.get('type'))}",
        f"Urgency: {_s(referral.get('urgency'))}",
        f"Reason: {_s(referral.get('reason'))}",
        "",
        "SUGGESTED MEDICATIONS",
    ]
    for med in _items(recs, "suggestedMedications"):
        med = med if isinstance(med, dict) else {"name": med}
        lines += [
            f"- {_s(med.get('name'))} - {_s(med.get('purpose'))}",
            f"  Note: {_s(med.get('note'))}",
        ]

    lines += [
        "",
        "IMMEDIATE ACTION",
        _s(recs.get("immediateAction")),
    ]
    tests = _items(recs, "additionalTests")
    if tests:
        lines += ["", "ADDITIONAL TESTS"]
        lines += [f"- {_s(t)}" for t in tests]

    lines += [
        "",
        "DISCLAIMER",
        _s(analysis.get("disclaimer")),
    ]
    return "\n".join(lines) + "\n"


# ============================================================
# PDF
# ============================================================

class _NumberedCanvas(canvas.Canvas):
    """Defers page output so every page can carry "Page i of n"."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(total)
            super().showPage()
        super().save()

    def _draw_footer(self, total: int):
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColorRGB(*(c / 255 for c in FOOTER_RGB))
        self.drawCentredString(width / 2, _from_top(290), f"Page {self._pageNumber} of {total}")
        self.drawCentredString(width / 2, _from_top(295), FOOTER_NOTE)


PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 20
TOP = 20
TEXT_LIMIT = 270
SECTION_LIMIT = 250


def _from_top(y_mm: float) -> float:
    return PAGE_HEIGHT - y_mm * mm


class _PdfWriter:

    def __init__(self, buffer, page_compression=None):
        self.c = _NumberedCanvas(buffer, pagesize=A4, pageCompression=page_compression)
        self.max_width = PAGE_WIDTH - 2 * MARGIN * mm
        self.y = TOP
        self.fill = (0, 0, 0)

    def new_page(self):
        # graphics state does not survive showPage
        self.c.showPage()
        self.color(self.fill)
        self.y = TOP

    def color(self, rgb):
        self.fill = rgb
        self.c.setFillColorRGB(*(v / 255 for v in rgb))

    def text(self, text, size: float = 10, bold: bool = False):
        font = "Helvetica-Bold" if bold else "Helvetica"
        for line in simpleSplit(_s(text), font, size, self.max_width) or [""]:
            if self.y > TEXT_LIMIT:
                self.new_page()
            self.c.setFont(font, size)
            self.c.drawString(MARGIN * mm, _from_top(self.y), line)
            self.y += size * 0.5
        self.y += 2

    def section(self, title: str):
        if self.y > SECTION_LIMIT:
            self.new_page()
        self.y += 5
        self.c.setStrokeColorRGB(*(v / 255 for v in BRAND_RGB))
        self.c.setLineWidth(0.5 * mm)
        self.c.line(MARGIN * mm, _from_top(self.y), PAGE_WIDTH - MARGIN * mm, _from_top(self.y))
        self.y += 7
        self.text(title, 12, bold=True)
        self.y += 2

    def header(self, generated: str):
        c = self.c
        self.color(BRAND_RGB)
        c.rect(0, _from_top(35), PAGE_WIDTH, 35 * mm, stroke=0, fill=1)
        self.color((255, 255, 255))
        c.setFont("Helvetica-Bold", 20)
        c.drawString(MARGIN * mm, _from_top(18), TITLE)
        c.setFont("Helvetica", 10)
        c.drawString(MARGIN * mm, _from_top(26), SUBTITLE)
        c.drawRightString(PAGE_WIDTH - MARGIN * mm, _from_top(26), f"Generated: {generated}")
        self.color((0, 0, 0))
        self.y = 50

    def finish(self):
        self.c.showPage()
        self.c.save()


def render_pdf(analysis: dict, generated_at: Optional[datetime] = None,
               page_compression: Optional[int] = None) -> bytes:
    """A4 report. ``page_compression=None`` keeps the reportlab default."""
    buffer = io.BytesIO()
    pdf = _PdfWriter(buffer, page_compression)
    pdf.header(_timestamp(generated_at))

    if analysis.get("parseError"):
        pdf.section("RAW AI RESPONSE")
        for paragraph in _s(analysis.get("rawResponse")).splitlines():
            pdf.text(paragraph)
        pdf.finish()
        return buffer.getvalue()

    scan = _section(analysis, "scanAnalysis")
    recs = _section(analysis, "recommendations")
    referral = _section(recs, "specialistReferral")

    pdf.section("SCAN INFORMATION")
    pdf.text(f"Scan Type: {_s(scan.get('scanType'))}")
    pdf.text(f"Body Region: {_s(scan.get('bodyRegion'))}")
    pdf.text(f"Image Quality: {_s(scan.get('imageQuality'))}")

    pdf.section("OVERALL ASSESSMENT")
    severity = analysis.get("overallSeverity")
    pdf.color(severity_rgb(severity))
    pdf.text(f"Severity: {_s(severity).upper()} (Score: {_s(analysis.get('severityScore'))}/100)", 14, bold=True)
    pdf.color((0, 0, 0))

    pdf.section("SUMMARY")
    pdf.text(analysis.get("summary"))

    findings = _items(analysis, "findings")
    if findings:
        pdf.section("DETAILED FINDINGS")
        for i, finding in enumerate(findings, 1):
            finding = finding if isinstance(finding, dict) else {"description": finding}
            pdf.text(f"{i}. {_s(finding.get('type'))}", 11, bold=True)
            pdf.text(f"   Location: {_s(finding.get('location'))}")
            pdf.text(f"   Description: {_s(finding.get('description'))}")
            pdf.text(
                f"   Severity: {_s(finding.get('severity'))} | "
                f"Confidence: {confidence_percent(finding.get('confidence'))}"
            )
            pdf.y += 3

    pdf.section("SPECIALIST REFERRAL")
    pdf.text(f"Recommended: {_s(referral.get('type'))}", 11, bold=True)
    pdf.text(f"Urgency: {_s(referral.get('urgency'))}")
    pdf.text(f"Reason: {_s(referral.get('reason'))}")

    pdf.section("SUGGESTED MEDICATIONS")
    for med in _items(recs, "suggestedMedications"):
        med = med if isinstance(med, dict) else {"name": med}
        pdf.text(f"- {_s(med.get('name'))} - {_s(med.get('purpose'))}", 10, bold=True)
        pdf.text(f"  Note: {_s(med.get('note'))}")

    pdf.section("IMMEDIATE ACTION REQUIRED")
    pdf.text(recs.get("immediateAction"))
    tests = _items(recs, "additionalTests")
    if tests:
        pdf.y += 3
        pdf.text("Additional Tests Recommended:", 10, bold=True)
        for test in tests:
            pdf.text(f"- {_s(test)}")

    pdf.section("DISCLAIMER")
    pdf.color(DISCLAIMER_RGB)
    pdf.text(analysis.get("disclaimer"), 9)
    pdf.color((0, 0, 0))

    pdf.finish()
    return buffer.getvalue()
