"""
PDFテキスト抽出
添付PDFのバイト列からプレーンテキストを取り出す（OCRは行わない）
"""

import logging
from io import BytesIO

import pdfplumber

from ..errors import DocumentDecodeError

logger = logging.getLogger(__name__)


class PdfTextDecoder:
    """pdfplumber によるPDF→テキスト変換"""

    def __init__(self, max_pages: int = 0):
        """
        Args:
            max_pages: 処理する最大ページ数（0 は全ページ）
        """
        self.max_pages = max_pages

    def decode(self, data: bytes, name: str = "") -> str:
        """
        PDFからテキストを抽出

        Args:
            data: PDFのバイト列
            name: ファイル名（ログ用）

        Returns:
            全ページのテキスト（改行区切り）

        Raises:
            DocumentDecodeError: 破損・非対応のPDF
        """
        if not data:
            raise DocumentDecodeError(f"Empty document: {name}")

        try:
            with pdfplumber.open(BytesIO(data)) as pdf:
                pages = pdf.pages[: self.max_pages] if self.max_pages else pdf.pages
                pages_text = [page.extract_text() or "" for page in pages]
        except Exception as e:
            raise DocumentDecodeError(f"Failed to read PDF {name}: {e}") from e

        text = "\n".join(pages_text)
        if not text.strip():
            logger.warning(f"No text extracted from PDF {name} - may need OCR")

        logger.debug(f"Extracted {len(text)} chars from {len(pages_text)} pages of {name}")
        return text
