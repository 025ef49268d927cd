"""
Certificate Documents

Turns a rendered template into a one-page A4 landscape PDF and stores it
under the upload directory.

The rendered HTML is reduced to plain text before drawing; layout is a fixed
header, title, wrapped body, QR code and certificate number footer.
"""

import asyncio
import base64
import binascii
import html
import io
import logging
import os
import re
from typing import Protocol

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from sms_certificates.core.storage import FileStorage

from .errors import DocumentProductionError

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")
DATA_URI_PATTERN = re.compile(r"^data:image/[a-zA-Z0-9.+-]+;base64,(?P<payload>.+)$", re.DOTALL)

CERTIFICATE_TITLE = "CERTIFICATE"


def extract_text_from_html(markup: str) -> str:
    """Strip tags, decode HTML entities and collapse whitespace."""
    text = TAG_PATTERN.sub(" ", markup)
    text = html.unescape(text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def decode_data_uri(data_uri: str) -> bytes:
    """Return the raw bytes of a base64 image data URI."""
    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise ValueError("Scannable artifact is not a base64 image data URI")
    try:
        return base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e


class DocumentRenderer(Protocol):
    def render(
        self, *, header: str, body_text: str, artifact_image: bytes, footer: str
    ) -> bytes: ...


class PdfRenderer:
    """Draws the certificate page with reportlab."""

    def __init__(self, title: str = CERTIFICATE_TITLE):
        self.title = title

    def render(self, *, header: str, body_text: str, artifact_image: bytes, footer: str) -> bytes:
        buf = io.BytesIO()
        page_w, page_h = landscape(A4)
        c = canvas.Canvas(buf, pagesize=landscape(A4))
        center_x = page_w / 2

        # Border
        margin = 1.5 * cm
        c.setStrokeColor(colors.HexColor("#1f2937"))
        c.setLineWidth(2)
        c.rect(margin, margin, page_w - 2 * margin, page_h - 2 * margin)

        # Header
        c.setFillColor(colors.HexColor("#374151"))
        c.setFont("Helvetica-Bold", 24)
        c.drawCentredString(center_x, page_h - 3.5 * cm, header)

        # Title
        c.setFillColor(colors.HexColor("#111827"))
        c.setFont("Helvetica-Bold", 32)
        c.drawCentredString(center_x, page_h - 5.5 * cm, self.title)

        # Body
        body_font, body_size, leading = "Helvetica", 14, 20
        max_width = page_w - 8 * cm
        c.setFont(body_font, body_size)
        y = page_h - 7.5 * cm
        for line in simpleSplit(body_text, body_font, body_size, max_width):
            if y < 5 * cm:
                break
            c.drawCentredString(center_x, y, line)
            y -= leading

        # QR code (bottom-right)
        qr_size = 3.5 * cm
        c.drawImage(
            ImageReader(io.BytesIO(artifact_image)),
            page_w - 2.5 * cm - qr_size,
            2.5 * cm,
            width=qr_size,
            height=qr_size,
        )

        # Footer
        c.setFillColor(colors.HexColor("#6b7280"))
        c.setFont("Helvetica", 10)
        c.drawCentredString(center_x, 2.5 * cm, footer)

        c.showPage()
        c.save()
        return buf.getvalue()


class DocumentProducer:
    """
    Produces and stores certificate PDFs.

    Args:
        renderer: Page renderer returning PDF bytes
        storage: Byte sink for the finished document
        upload_dir: Filesystem directory documents are written to
        public_prefix: URL prefix the upload directory is served under
        school_name: Header line on every document
    """

    def __init__(
        self,
        renderer: DocumentRenderer,
        storage: FileStorage,
        upload_dir: str,
        public_prefix: str,
        school_name: str,
    ):
        self.renderer = renderer
        self.storage = storage
        self.upload_dir = upload_dir
        self.public_prefix = public_prefix.rstrip("/")
        self.school_name = school_name

    def file_path(self, certificate_number: str) -> str:
        return os.path.join(self.upload_dir, f"{certificate_number}.pdf")

    def public_url(self, certificate_number: str) -> str:
        return f"{self.public_prefix}/{certificate_number}.pdf"

    def _produce_sync(self, certificate_number: str, rendered_html: str, artifact: str) -> str:
        pdf = self.renderer.render(
            header=self.school_name,
            body_text=extract_text_from_html(rendered_html),
            artifact_image=decode_data_uri(artifact),
            footer=f"Certificate Number: {certificate_number}",
        )
        self.storage.ensure_directory(self.upload_dir)
        self.storage.write_file(self.file_path(certificate_number), pdf)
        return self.public_url(certificate_number)

    async def produce(self, certificate_number: str, rendered_html: str, artifact: str) -> str:
        """
        Render and store the document, returning its public URL.

        Raises:
            DocumentProductionError: On any rendering or storage failure
        """
        try:
            return await asyncio.to_thread(
                self._produce_sync, certificate_number, rendered_html, artifact
            )
        except Exception as e:
            logger.error("PDF generation failed for %s: %s", certificate_number, e)
            raise DocumentProductionError(e) from e

    async def discard(self, certificate_number: str) -> bool:
        """Remove a stored document whose certificate row was never written."""
        try:
            return await asyncio.to_thread(
                self.storage.remove_file, self.file_path(certificate_number)
            )
        except OSError as e:
            logger.warning("Could not remove orphaned document %s: %s", certificate_number, e)
            return False
