"""
QR code generation for the ticket printer client.
Builds monochrome QR images for raster printing.
"""

import qrcode
from qrcode.constants import ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q, ERROR_CORRECT_H
from PIL import Image
from typing import Optional

from .config import config
from .utils.logger import logger


class QRGenerator:
    """QR code generator with configurable error correction and quiet zone."""

    def __init__(self, error_correction: Optional[str] = None, border: Optional[int] = None):
        self.error_correction_map = {
            'L': ERROR_CORRECT_L,
            'M': ERROR_CORRECT_M,
            'Q': ERROR_CORRECT_Q,
            'H': ERROR_CORRECT_H
        }
        self.error_correction = error_correction or config.QR_ERROR_CORRECTION
        self.border = config.QR_BORDER if border is None else border

    def generate_image(self, payload: str, cell_size: int) -> Image.Image:
        """
        Generate a QR code image.

        Args:
            payload: URL or text to encode
            cell_size: Printed size of one QR module, in dots

        Returns:
            1-bit PIL image ready for raster printing
        """
        logger.qr_generated(payload, cell_size)

        qr = qrcode.QRCode(
            version=None,
            error_correction=self.error_correction_map[self.error_correction],
            box_size=cell_size,
            border=self.border,
        )

        qr.add_data(payload)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        img = img.get_image() if hasattr(img, "get_image") else img

        logger.debug("🔲 QR image generated",
                     size=f"{img.size[0]}x{img.size[1]}",
                     version=qr.version)

        return img.convert("1")


# Global QR generator instance
qr_generator = QRGenerator()
