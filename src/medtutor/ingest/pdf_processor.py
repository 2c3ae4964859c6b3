"""
PDF text extraction for uploaded guideline documents.

Uploads arrive as raw bytes, so extraction works on in-memory streams
rather than files on disk. Text is pulled block by block per page and
cleaned of common PDF artifacts before chunking.

Usage:
    from medtutor.ingest import PDFProcessor

    processor = PDFProcessor(data, filename="ada_standards.pdf")
    document = processor.extract()
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import fitz  # PyMuPDF

from medtutor.errors import ValidationError
from medtutor.models.content import ExtractedDocument, ExtractedPage


FILE_MARKER = "[FILE: {name}]"


class PDFProcessor:
    """
    Extracts text and metadata from a PDF held in memory.

    Example:
        >>> processor = PDFProcessor(Path("guideline.pdf").read_bytes(), "guideline.pdf")
        >>> document = processor.extract()
        >>> print(f"Extracted {document.total_pages} pages")
    """

    def __init__(self, data: bytes, filename: str = "document.pdf"):
        """
        Initialize the PDF processor.

        Args:
            data: Raw PDF bytes.
            filename: Original file name, used for the ``[FILE: ...]`` marker.

        Raises:
            ValidationError: If the data is empty.
        """
        if not data:
            raise ValidationError(f"Uploaded file is empty: {filename}")

        self.data = data
        self.filename = filename
        self.pages: List[ExtractedPage] = []
        self.document: Optional[ExtractedDocument] = None
        self._doc: Optional[fitz.Document] = None

    @classmethod
    def from_path(cls, pdf_path: Union[str, Path]) -> "PDFProcessor":
        """Build a processor for a PDF on disk."""
        pdf_path = Path(pdf_path)
        if not pdf_path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        if pdf_path.suffix.lower() != ".pdf":
            raise ValueError(f"File is not a PDF: {pdf_path}")
        return cls(pdf_path.read_bytes(), filename=pdf_path.name)

    def extract(self) -> ExtractedDocument:
        """
        Extract all text and metadata from the PDF.

        Returns:
            ExtractedDocument with per-page text.

        Raises:
            ValidationError: If the bytes are not a readable PDF.
        """
        try:
            self._doc = fitz.open(stream=self.data, filetype="pdf")
        except Exception as e:
            raise ValidationError(f"Could not read PDF: {self.filename}") from e

        try:
            if self._doc.needs_pass:
                raise ValidationError(f"Could not read PDF: {self.filename}")

            try:
                self.pages = list(self._extract_pages())
            except (ValueError, RuntimeError) as e:
                raise ValidationError(f"Could not read PDF: {self.filename}") from e
            metadata = self._doc.metadata or {}

            self.document = ExtractedDocument(
                filename=self.filename,
                title=metadata.get("title") or None,
                author=metadata.get("author") or None,
                pages=self.pages,
                extracted_at=datetime.now(),
            )
            return self.document

        finally:
            self._doc.close()
            self._doc = None

    def _extract_pages(self) -> Iterator[ExtractedPage]:
        """Extract text from each page in reading-block order."""
        if self._doc is None:
            raise RuntimeError("PDF document not opened")

        for page_num in range(len(self._doc)):
            page = self._doc[page_num]

            blocks = page.get_text("blocks")
            text_parts = []
            for b in blocks:
                # b[6] is the block type; 0 means text, 1 means image
                if b[6] == 0:
                    text_parts.append(b[4])

            text = self._clean_text("\n".join(text_parts))

            yield ExtractedPage(
                page_number=page_num + 1,
                text=text,
            )

    def _clean_text(self, text: str) -> str:
        """Clean extracted text of common PDF artifacts."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r"^\s*\d{1,4}\s*$", "", text, flags=re.MULTILINE)
        text = text.replace("\f", "\n")
        return text.strip()


def extract_pdf_text(data: bytes, filename: str = "document.pdf") -> ExtractedDocument:
    """Convenience function to extract one uploaded PDF."""
    return PDFProcessor(data, filename=filename).extract()


def combine_documents(documents: Iterable[ExtractedDocument]) -> str:
    """Concatenate documents into one text stream tagged with file markers.

    Documents without any text are skipped.
    """
    combined = ""
    for doc in documents:
        text = doc.text
        if text:
            combined += "\n\n" + FILE_MARKER.format(name=doc.filename) + "\n" + text
    return combined
