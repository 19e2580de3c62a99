"""reportlab helpers shared by the statement, photo grid and certificate PDFs."""

from __future__ import annotations

import logging
import os
from typing import Optional

from reportlab.lib.colors import black
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import TableStyle

logger = logging.getLogger(__name__)

DEFAULT_FONT = "Helvetica"
KOREAN_FONT = "NanumGothic"

FALLBACK_FONT_PATHS = (
    "/usr/share/fonts/truetype/nanum/NanumGothic.ttf",
    "C:/Windows/Fonts/malgun.ttf",
    "/System/Library/Fonts/AppleSDGothicNeo.ttc",
)


def register_font(font_path: Optional[str] = None) -> str:
    """Register a TTF able to render Hangul; fall back to Helvetica."""
    if KOREAN_FONT in pdfmetrics.getRegisteredFontNames():
        return KOREAN_FONT

    candidates = [font_path] if font_path else []
    candidates.extend(FALLBACK_FONT_PATHS)
    for path in candidates:
        if not path or not os.path.exists(path):
            continue
        try:
            pdfmetrics.registerFont(TTFont(KOREAN_FONT, path))
            return KOREAN_FONT
        except Exception:
            logger.warning("Could not register PDF font %s", path, exc_info=True)
    return DEFAULT_FONT


def styles_for(font: str):
    styles = getSampleStyleSheet()
    if font != DEFAULT_FONT:
        for name in ("Title", "Normal", "Heading1", "Heading2"):
            styles[name].fontName = font
    return styles


def grid_style(font: str, *, header: bool = True) -> TableStyle:
    commands = [
        ("TEXTCOLOR", (0, 0), (-1, -1), black),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("FONTNAME", (0, 0), (-1, -1), font),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("GRID", (0, 0), (-1, -1), 1, black),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    if header:
        commands += [
            ("BACKGROUND", (0, 0), (-1, 0), "#4472C4"),
            ("TEXTCOLOR", (0, 0), (-1, 0), "white"),
        ]
    return TableStyle(commands)
