"""
Certificate Verification Artifacts

Builds the public verification URL for a certificate and encodes it as a QR
code PNG data URI that is embedded in the issued document.
"""

import base64
import io
import logging
from typing import Protocol

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q
from qrcode.image.pil import PilImage

from .errors import ArtifactGenerationError

logger = logging.getLogger(__name__)

VERIFY_PATH = "/api/v1/certificates/verify/"
DATA_URI_PREFIX = "data:image/png;base64,"

ERROR_CORRECTION_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


def build_verification_url(base_url: str, certificate_number: str) -> str:
    """Public URL at which a certificate number can be verified."""
    return f"{base_url.rstrip('/')}{VERIFY_PATH}{certificate_number}"


class ScannableEncoder(Protocol):
    def encode(self, payload: str) -> str:
        """Encode `payload` and return an image data URI."""
        ...


class QRCodeEncoder:
    """
    QR encoder producing a square PNG data URI.

    Args:
        error_correction: One of L, M, Q, H
        size: Output width/height in pixels
        margin: Quiet zone in modules
    """

    def __init__(self, error_correction: str = "H", size: int = 200, margin: int = 1):
        self.error_correction = ERROR_CORRECTION_LEVELS[error_correction.upper()]
        self.size = size
        self.margin = margin

    def encode(self, payload: str) -> str:
        qr = qrcode.QRCode(error_correction=self.error_correction, box_size=1, border=self.margin)
        qr.add_data(payload)
        qr.make(fit=True)

        # Pick the largest whole box size that fits, then scale to the exact width
        modules = qr.modules_count + 2 * self.margin
        qr.box_size = max(1, self.size // modules)

        img = qr.make_image(
            image_factory=PilImage, fill_color="black", back_color="white"
        ).get_image().convert("RGB")
        if img.size != (self.size, self.size):
            img = img.resize((self.size, self.size), Image.Resampling.NEAREST)

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return DATA_URI_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


class VerificationArtifactBuilder:
    """Wraps an encoder so any failure surfaces as ArtifactGenerationError."""

    def __init__(self, encoder: ScannableEncoder):
        self.encoder = encoder

    def build_scannable_artifact(self, verification_url: str) -> str:
        try:
            return self.encoder.encode(verification_url)
        except Exception as e:
            logger.error("QR code generation failed: %s", e)
            raise ArtifactGenerationError(e) from e
