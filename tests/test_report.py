import re
from datetime import datetime

from report import (
    FOOTER_NOTE,
    SUBTITLE,
    confidence_percent,
    render_pdf,
    render_text,
    report_filename,
)

WHEN = datetime(2025, 3, 14, 9, 30)


def _strings(value):
    if isinstance(value, dict):
        for v in value.values():
            yield from _strings(v)
    elif isinstance(value, list):
        for v in value:
            yield from _strings(v)
    elif isinstance(value, str):
        yield value


def test_text_export_keeps_every_field(sample_analysis):
    text = render_text(sample_analysis, generated_at=WHEN)

    for value in _strings(sample_analysis):
        assert value in text
    assert "Score: 45/100" in text
    assert "Confidence: 87%" in text
    assert "Confidence: 64%" in text
    assert "Generated: 2025-03-14 09:30" in text


def test_text_export_tolerates_missing_fields():
    text = render_text({"overallSeverity": "Normal", "findings": None})
    assert "Severity: Normal" in text
    assert "No findings reported." in text


def test_text_export_of_soft_failure():
    text = render_text({"rawResponse": "free text reply", "parseError": True})
    assert "free text reply" in text
    assert "SCAN INFORMATION" not in text


def test_confidence_percent():
    assert confidence_percent(0.957) == "96%"
    assert confidence_percent(1) == "100%"
    assert confidence_percent("high") == "high"
    assert confidence_percent(None) == ""


def test_report_filename():
    name = report_filename("pdf", WHEN)
    assert re.fullmatch(r"xray-analysis-report-\d+\.pdf", name)


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type\s*/Page[^s]", pdf))


def test_pdf_is_generated(sample_analysis):
    pdf = render_pdf(sample_analysis, generated_at=WHEN)
    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) >= 1


def test_pdf_breaks_long_reports_into_pages(sample_analysis):
    finding = sample_analysis["findings"][0]
    short = _page_count(render_pdf(sample_analysis, generated_at=WHEN))

    sample_analysis["findings"] = [dict(finding) for _ in range(40)]
    sample_analysis["summary"] = "Long summary sentence. " * 200

    pdf = render_pdf(sample_analysis, generated_at=WHEN)
    assert _page_count(pdf) > short + 2


def test_pdf_of_partial_and_raw_results():
    assert render_pdf({"summary": "only a summary"}).startswith(b"%PDF")
    assert render_pdf({"rawResponse": "line one\nline two", "parseError": True}).startswith(b"%PDF")


def test_pdf_every_page_has_footer_and_header_once(sample_analysis):
    finding = sample_analysis["findings"][0]
    sample_analysis["findings"] = [dict(finding) for _ in range(40)]

    pdf = render_pdf(sample_analysis, generated_at=WHEN, page_compression=0)
    pages = _page_count(pdf)

    assert pages > 1
    assert pdf.count(FOOTER_NOTE.encode()) == pages
    for i in range(1, pages + 1):
        assert pdf.count(f"Page {i} of {pages}".encode()) == 1
    assert pdf.count(SUBTITLE.encode()) == 1
