"""
Unit tests for certificate document production.
"""

import os

import pytest

from sms_certificates.core.storage import FileStorage
from sms_certificates.modules.certificates.documents import (
    DocumentProducer,
    PdfRenderer,
    decode_data_uri,
    extract_text_from_html,
)
from sms_certificates.modules.certificates.errors import DocumentProductionError


class BrokenRenderer:
    def render(self, *, header, body_text, artifact_image, footer):
        raise RuntimeError("renderer exploded")


class RecordingRenderer:
    def __init__(self):
        self.calls = []

    def render(self, **kwargs):
        self.calls.append(kwargs)
        return b"%PDF-fake"


def make_producer(tmp_path, renderer=None):
    return DocumentProducer(
        renderer=renderer or PdfRenderer(),
        storage=FileStorage(),
        upload_dir=str(tmp_path / "certificates"),
        public_prefix="/uploads/certificates/",
        school_name="Shree Janata Secondary School",
    )


class TestExtractText:
    """Tests for HTML to text reduction."""

    def test_strips_tags_and_collapses_whitespace(self):
        html = "<div>\n  <h1>Hello</h1>\n<p>John   Doe</p></div>"
        assert extract_text_from_html(html) == "Hello John Doe"

    def test_decodes_entities(self):
        html = "Tom&nbsp;&amp;&nbsp;Jerry &lt;3 &quot;ok&quot; it&#39;s"
        assert extract_text_from_html(html) == "Tom & Jerry <3 \"ok\" it's"

    def test_amp_decoded_once(self):
        assert extract_text_from_html("&amp;lt;") == "&lt;"

    def test_decodes_numeric_and_named_entities(self):
        html = "<p>Ren&eacute;e&#8217;s award &#x2014; &copy; 2024</p>"
        assert extract_text_from_html(html) == "Renée’s award — © 2024"


class TestDecodeDataUri:
    def test_decodes_payload(self, png_data_uri):
        assert decode_data_uri(png_data_uri()).startswith(b"\x89PNG")

    @pytest.mark.parametrize("value", ["not a data uri", "data:image/png;base64,@@@"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            decode_data_uri(value)


class TestDocumentProducer:
    """Tests for producing and storing PDFs."""

    @pytest.mark.asyncio
    async def test_produces_pdf_file(self, tmp_path, png_data_uri):
        producer = make_producer(tmp_path)

        url = await producer.produce(
            "CERT-CHAR-2024-0001",
            "<p>This certifies that <b>John Doe</b> has good character.</p>",
            png_data_uri(),
        )

        assert url == "/uploads/certificates/CERT-CHAR-2024-0001.pdf"
        path = tmp_path / "certificates" / "CERT-CHAR-2024-0001.pdf"
        assert path.read_bytes().startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_renderer_receives_page_parts(self, tmp_path, png_data_uri):
        renderer = RecordingRenderer()
        producer = make_producer(tmp_path, renderer)

        await producer.produce("CERT-ECA-2024-0009", "<p>Asha &amp; Ram</p>", png_data_uri())

        call = renderer.calls[0]
        assert call["header"] == "Shree Janata Secondary School"
        assert call["body_text"] == "Asha & Ram"
        assert call["footer"] == "Certificate Number: CERT-ECA-2024-0009"
        assert call["artifact_image"].startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_renderer_failure(self, tmp_path, png_data_uri):
        producer = make_producer(tmp_path, BrokenRenderer())

        with pytest.raises(DocumentProductionError) as exc_info:
            await producer.produce("CERT-ECA-2024-0001", "<p>x</p>", png_data_uri())

        assert exc_info.value.message == "Failed to generate PDF: renderer exploded"
        assert not os.path.exists(producer.file_path("CERT-ECA-2024-0001"))

    @pytest.mark.asyncio
    async def test_bad_artifact(self, tmp_path):
        producer = make_producer(tmp_path, RecordingRenderer())

        with pytest.raises(DocumentProductionError):
            await producer.produce("CERT-ECA-2024-0001", "<p>x</p>", "garbage")

    @pytest.mark.asyncio
    async def test_discard(self, tmp_path):
        producer = make_producer(tmp_path, RecordingRenderer())
        await producer.produce(
            "CERT-ECA-2024-0002", "<p>x</p>", "data:image/png;base64,iVBORw0KGgo="
        )

        assert await producer.discard("CERT-ECA-2024-0002") is True
        assert await producer.discard("CERT-ECA-2024-0002") is False
