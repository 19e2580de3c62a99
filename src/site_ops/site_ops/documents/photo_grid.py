from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image as PdfImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table

from ..common.pdf import grid_style, register_font, styles_for

CELL_WIDTH = 3.2 * inch
CELL_HEIGHT = 2.4 * inch


@dataclass(frozen=True)
class PhotoPair:
    caption: str
    before: Optional[bytes]
    after: Optional[bytes]


def _fit(data: Optional[bytes]):
    """Scale a photo into the grid cell keeping its aspect ratio."""
    if not data:
        return "-"
    with Image.open(io.BytesIO(data)) as img:
        img = img.convert("RGB")
        img.thumbnail((1200, 1200))
        width, height = img.size
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=85)
    buf.seek(0)
    scale = min(CELL_WIDTH / width, CELL_HEIGHT / height)
    return PdfImage(ImageReader(buf), width=width * scale, height=height * scale)


def render_photo_grid_pdf(
    pairs: Sequence[PhotoPair], *, title: str, subtitle: Optional[str] = None, font_path: Optional[str] = None
) -> bytes:
    font = register_font(font_path)
    styles = styles_for(font)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=40, bottomMargin=40)
    story = [Paragraph(f"<b>{escape(title)}</b>", styles["Title"])]
    if subtitle:
        story.append(Paragraph(escape(subtitle), styles["Normal"]))
    story.append(Spacer(1, 16))

    rows = [["Before", "After"]]
    for pair in pairs:
        rows.append([_fit(pair.before), _fit(pair.after)])
        rows.append([Paragraph(escape(pair.caption), styles["Normal"]), ""])
    table = Table(rows, colWidths=[CELL_WIDTH + 12, CELL_WIDTH + 12], repeatRows=1)
    style = grid_style(font)
    for idx in range(2, len(rows), 2):
        style.add("SPAN", (0, idx), (1, idx))
    table.setStyle(style)
    story.append(table)

    doc.build(story)
    return buffer.getvalue()
