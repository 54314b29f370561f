import html
import logging

import streamlit as st

import config
from client import ScanAnalysis
from intake import NotAnImageError, from_upload
from report import confidence_percent, render_pdf, render_text, report_filename
from severity import severity_style, urgency_style

logging.basicConfig(level=config.LOG_LEVEL)

SCAN_TYPES = {"X-ray": "X-Ray", "CT": "CT Scan", "MRI": "MRI"}

# -------------------- SESSION STATE --------------------
if "scan_analysis" not in st.session_state:
    st.session_state.scan_analysis = ScanAnalysis()

if "scan" not in st.session_state:
    st.session_state.scan = None

if "upload_key" not in st.session_state:
    st.session_state.upload_key = 0

controller: ScanAnalysis = st.session_state.scan_analysis


# -------------------- RENDER HELPERS --------------------
def badge(text, background, color="#ffffff"):
    return (
        f'<span style="display:inline-block;padding:2px 10px;border-radius:999px;'
        f'background:{background};color:{color};font-size:0.75rem;font-weight:600;">'
        f'{html.escape(str(text or ""))}</span>'
    )


def severity_indicator(severity, score=None):
    style = severity_style(severity)
    label = style["label"] + (f" ({score}%)" if score is not None else "")
    return (
        f'<span style="display:inline-block;width:12px;height:12px;border-radius:50%;'
        f'background:{style["hex"]};margin-right:8px;"></span>'
        f'<span style="color:{style["hex"]};font-weight:600;">{html.escape(label)}</span>'
    )


def render_report(analysis: dict):
    scan = analysis.get("scanAnalysis") or {}
    recs = analysis.get("recommendations") or {}
    referral = recs.get("specialistReferral") or {}
    meds = recs.get("suggestedMedications") or []
    tests = recs.get("additionalTests") or []

    st.subheader("Analysis Report")
    st.caption("AI-Generated Insights")

    col_a, col_b = st.columns(2)
    with col_a:
        st.caption("Assessment")
        st.markdown(
            severity_indicator(analysis.get("overallSeverity"), analysis.get("severityScore")),
            unsafe_allow_html=True,
        )
    with col_b:
        st.caption("Region")
        st.write(scan.get("bodyRegion") or "")

    st.write("### Summary")
    st.write(analysis.get("summary") or "")

    findings = analysis.get("findings") or []
    if findings:
        st.write("### Findings")
        for finding in findings:
            with st.container(border=True):
                style = severity_style(finding.get("severity"))
                st.markdown(
                    f"**{html.escape(str(finding.get('type') or ''))}** "
                    + badge(style["label"], style["hex"]),
                    unsafe_allow_html=True,
                )
                st.caption(finding.get("location") or "")
                st.write(finding.get("description") or "")
                st.caption(f"{confidence_percent(finding.get('confidence'))} confidence")

    col_spec, col_meds = st.columns(2)
    with col_spec:
        st.write("#### Specialist")
        st.write(f"**{referral.get('type') or ''}**")
        urgency = urgency_style(referral.get("urgency"))
        st.markdown(badge(urgency["label"], urgency["hex"], urgency["text"]), unsafe_allow_html=True)
        if referral.get("reason"):
            st.caption(referral["reason"])
    with col_meds:
        st.write("#### Medications")
        for med in meds[:2]:
            st.write((med.get("name") or "") if isinstance(med, dict) else str(med))
        if len(meds) > 2:
            st.caption(f"+{len(meds) - 2} more")

    st.write("### Next Steps")
    st.write(recs.get("immediateAction") or "")
    if tests:
        st.caption("Additional Tests:")
        st.markdown(" ".join(badge(t, "#f3f4f6", "#111827") for t in tests), unsafe_allow_html=True)

    if analysis.get("disclaimer"):
        st.warning(analysis["disclaimer"])


# -------------------- UI --------------------
st.set_page_config(page_title="OsteoVision")

st.title("OsteoVision")
st.caption("AI-Powered Bone Fracture Detection & Analysis")

if st.session_state.scan is None and controller.analysis is None:
    st.write(
        "Upload medical scans for instant AI analysis. Detect fractures, assess severity, "
        "and receive specialist recommendations."
    )

upload_col, result_col = st.columns(2)

with upload_col:
    scan_type = st.radio(
        "Medical Scan",
        options=list(SCAN_TYPES),
        format_func=SCAN_TYPES.get,
        horizontal=True,
    )

    uploaded = st.file_uploader(
        "Upload X-Ray Scan",
        help="Drag & drop or browse. Non-image files are rejected.",
        disabled=controller.is_analyzing,
        key=f"upload_{st.session_state.upload_key}",
    )

    if uploaded is not None:
        current = st.session_state.scan
        if current is None or current.name != uploaded.name or current.data != uploaded.getvalue():
            try:
                st.session_state.scan = from_upload(uploaded)
                controller.reset()
            except NotAnImageError as e:
                st.session_state.scan = None
                st.warning(str(e))

    scan = st.session_state.scan
    if scan is not None:
        st.image(scan.data, caption=scan.name, use_container_width=True)

    col1, col2 = st.columns(2)

    # -------- ANALYZE BUTTON --------
    with col1:
        if scan is not None and controller.analysis is None:
            if st.button("Analyze with AI", disabled=controller.is_analyzing, use_container_width=True):
                with st.spinner("Analyzing Scan..."):
                    controller.analyze(scan.base64, scan_type, scan.media_type)
                if controller.error:
                    st.toast(controller.error)
                elif controller.warning:
                    st.toast(controller.warning)
                else:
                    st.toast("Scan analysis complete")
                st.rerun()

    # -------- CLEAR BUTTON --------
    with col2:
        if scan is not None or controller.analysis is not None:
            if st.button("Clear", use_container_width=True):
                st.session_state.scan = None
                st.session_state.upload_key += 1
                controller.reset()
                st.rerun()

# -------------------- DISPLAY --------------------
with result_col:
    analysis = controller.analysis

    if controller.error:
        st.error(controller.error)

    if analysis is None:
        st.info('Upload a medical scan and click "Analyze with AI" to generate a detailed diagnostic report')

    elif controller.is_soft_failure:
        st.warning(controller.warning or "Analysis completed but response format was unexpected")
        st.code(analysis.get("rawResponse") or "", language=None)

    else:
        render_report(analysis)

    if analysis is not None:
        d1, d2 = st.columns(2)
        with d1:
            st.download_button(
                "Download text",
                data=render_text(analysis),
                file_name=report_filename("txt"),
                mime="text/plain",
                use_container_width=True,
            )
        with d2:
            st.download_button(
                "Download PDF",
                data=render_pdf(analysis),
                file_name=report_filename("pdf"),
                mime="application/pdf",
                use_container_width=True,
            )

st.divider()
st.caption(
    "Medical Disclaimer: This tool is for educational and screening purposes only. "
    "All findings must be verified by a qualified healthcare professional before any "
    "diagnosis or treatment."
)
