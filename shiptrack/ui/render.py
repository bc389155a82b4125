"""
Markup helpers for the portal. Shipment and event fields come from an external
ingestion feed, so every value is escaped before it reaches st.markdown.
"""
import html
import re

_MD_SPECIAL = re.compile(r"([\\`*_{}\[\]()#+\-.!|~])")


def md_text(value) -> str:
    """Free text made inert for st.markdown/st.caption: no HTML, no markdown syntax."""
    return _MD_SPECIAL.sub(r"\\\1", html.escape(str(value), quote=False))


def status_badge_html(status) -> str:
    return f"<span class='status-badge'>{html.escape(str(status))}</span>"


def right_aligned_html(text) -> str:
    return f"<div style='text-align:right'><b>{html.escape(str(text))}</b></div>"


def milestone_html(label, reached: bool, current: bool) -> str:
    css = "milestone milestone-current" if current else "milestone"
    marker = "●" if reached else "○"
    return f"<div class='{css}'>{marker}<br/>{html.escape(str(label))}</div>"
