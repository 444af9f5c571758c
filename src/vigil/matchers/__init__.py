"""Image and text lookup backends used by the desktop signal source."""

from __future__ import annotations

from vigil.matchers.ocr import OCRMatcher
from vigil.matchers.template import TemplateMatcher

__all__ = [
    "OCRMatcher",
    "TemplateMatcher",
]
