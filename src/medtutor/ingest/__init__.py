"""Document ingestion for MedTutor."""

from .pdf_processor import PDFProcessor, combine_documents, extract_pdf_text

__all__ = ["PDFProcessor", "combine_documents", "extract_pdf_text"]
