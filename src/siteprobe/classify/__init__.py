"""
Resource issue classifier.

Pure functions, one module per resource kind. Each takes an extracted
snapshot (plus the probe result where the kind is network-verified) and
returns zero or more IssueRecords with codes from that kind's closed
vocabulary.
"""

from .assets import (
    ScriptIssue,
    StylesheetIssue,
    classify_script,
    classify_stylesheet,
    script_needs_probe,
    stylesheet_needs_probe,
)
from .iframes import IframeIssue, classify_iframe
from .images import ImageIssue, classify_image
from .images import needs_probe as image_needs_probe
from .media import MediaIssue, classify_media
from .page import CssDelivery, PageCssIssue, classify_css_delivery, grade_load_time
from .report import build_report

__all__ = [
    "CssDelivery",
    "IframeIssue",
    "ImageIssue",
    "MediaIssue",
    "PageCssIssue",
    "ScriptIssue",
    "StylesheetIssue",
    "build_report",
    "classify_css_delivery",
    "classify_iframe",
    "classify_image",
    "classify_media",
    "classify_script",
    "classify_stylesheet",
    "grade_load_time",
    "image_needs_probe",
    "script_needs_probe",
    "stylesheet_needs_probe",
]
