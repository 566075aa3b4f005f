"""Text extraction from uploaded PDFs, used as context for document analysis."""

import asyncio
import logging
import re
from dataclasses import dataclass

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

# Control characters that Postgres TEXT cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


@dataclass
class PDFText:
    text: str
    page_count: int


class PDFProcessor:
    """Pulls plain text out of PDF uploads."""

    @staticmethod
    def is_pdf(content_type: str, filename: str) -> bool:
        return content_type == "application/pdf" or filename.lower().endswith(".pdf")

    @staticmethod
    def _read(pdf_bytes: bytes) -> PDFText:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
            pages = [page.get_text() for page in doc]
            page_count = len(doc)
        return PDFText(text=_ILLEGAL_CHARS.sub("", "\n\n".join(pages)), page_count=page_count)

    async def extract_text(self, pdf_bytes: bytes) -> PDFText | None:
        """
        Extract text from every page, pages separated by a blank line.

        Parsing runs in a worker thread. Returns None if the bytes cannot be
        read as a PDF; upload continues without extracted text in that case.
        """
        try:
            return await asyncio.to_thread(self._read, pdf_bytes)
        except Exception as e:
            logger.warning("PDF text extraction failed: %s", e)
            return None


# Singleton instance
pdf_processor = PDFProcessor()
