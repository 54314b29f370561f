# ============================================================
# SEVERITY / URGENCY DISPLAY RULES
#
# Pure lookups. Labels come straight from the AI and are not
# enforced, so matching is case-insensitive and unknown labels
# fall back to the "normal" style.
# ============================================================

SEVERITY_STYLES = {
    "normal":   {"label": "Normal",   "hex": "#22c55e", "rgb": (34, 197, 94)},
    "mild":     {"label": "Mild",     "hex": "#84cc16", "rgb": (132, 204, 22)},
    "moderate": {"label": "Moderate", "hex": "#eab308", "rgb": (234, 179, 8)},
    "severe":   {"label": "Severe",   "hex": "#f97316", "rgb": (249, 115, 22)},
    "critical": {"label": "Critical", "hex": "#ef4444", "rgb": (239, 68, 68)},
}

URGENCY_STYLES = {
    "emergency": {"label": "Emergency", "hex": "#dc2626", "text": "#ffffff"},
    "urgent":    {"label": "Urgent",    "hex": "#f97316", "text": "#ffffff"},
    "routine":   {"label": "Routine",   "hex": "#e5e7eb", "text": "#4b5563"},
}

UNKNOWN_RGB = (0, 0, 0)


def _key(label) -> str:
    return str(label or "").strip().lower()


def severity_style(label) -> dict:
    """Display label and colours for a severity, defaulting to Normal."""
    return SEVERITY_STYLES.get(_key(label), SEVERITY_STYLES["normal"])


def severity_rgb(label) -> tuple:
    """PDF colour for a severity. Unknown labels print in black."""
    style = SEVERITY_STYLES.get(_key(label))
    return style["rgb"] if style else UNKNOWN_RGB


def urgency_style(urgency) -> dict:
    key = _key(urgency)
    if key in URGENCY_STYLES:
        return URGENCY_STYLES[key]
    return {"label": str(urgency or ""), "hex": "#e5e7eb", "text": "#4b5563"}
