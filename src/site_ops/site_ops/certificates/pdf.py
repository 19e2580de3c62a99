from __future__ import annotations

import io
from datetime import date
from typing import Optional
from xml.sax.saxutils import escape

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image as PdfImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table

from ..common.pdf import grid_style, register_font, styles_for
from .model import CertificateForm
from .signature import crop_to_ink

SIGNATURE_BOX = (2.2 * inch, 0.9 * inch)


def _multiline(text: Optional[str]) -> str:
    return escape(text or "-").replace("\n", "<br/>")


def _signature_flowable(signature: Image.Image) -> PdfImage:
    img = crop_to_ink(signature)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    max_w, max_h = SIGNATURE_BOX
    scale = min(max_w / img.width, max_h / img.height)
    return PdfImage(ImageReader(buf), width=img.width * scale, height=img.height * scale)


def render_certificate_pdf(
    form: CertificateForm, signature: Image.Image, *, issued_on: date, font_path: Optional[str] = None
) -> bytes:
    font = register_font(font_path)
    styles = styles_for(font)
    body = styles["Normal"]

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=50, bottomMargin=50)
    story = [Paragraph("<b>WORK COMPLETION CERTIFICATE</b>", styles["Title"]), Spacer(1, 20)]

    header = Table(
        [
            ["Site", form.site_name, "Project", form.project_name],
            ["Worker", form.worker_name, "Contact", form.worker_phone or "-"],
        ],
        colWidths=[1 * inch, 2 * inch, 1 * inch, 2 * inch],
    )
    header.setStyle(grid_style(font, header=False))
    story += [header, Spacer(1, 16)]

    content = Table(
        [
            ["Work content", Paragraph(_multiline(form.work_content), body)],
            ["Notes", Paragraph(_multiline(form.notes), body)],
        ],
        colWidths=[1.4 * inch, 4.6 * inch],
        rowHeights=[2.6 * inch, 1.2 * inch],
    )
    style = grid_style(font, header=False)
    style.add("VALIGN", (1, 0), (1, -1), "TOP")
    style.add("ALIGN", (1, 0), (1, -1), "LEFT")
    content.setStyle(style)
    story += [content, Spacer(1, 20)]

    completed = form.completed_on or issued_on
    story += [
        Paragraph("We confirm that the work above has been completed.", body),
        Spacer(1, 8),
        Paragraph(completed.strftime("%Y-%m-%d"), body),
        Spacer(1, 16),
    ]

    sign = Table(
        [
            ["Affiliation", form.affiliation or "-"],
            ["Name", form.confirmer_name],
            ["Signature", _signature_flowable(signature)],
        ],
        colWidths=[1.4 * inch, 2.6 * inch],
        hAlign="RIGHT",
    )
    sign.setStyle(grid_style(font, header=False))
    story += [sign, Spacer(1, 24)]

    if form.addressee:
        story.append(Paragraph(f"<b>To: {escape(form.addressee)}</b>", styles["Heading2"]))

    doc.build(story)
    return buffer.getvalue()
