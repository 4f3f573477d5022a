"""
Text extraction for non-PDF uploads (plain text and Word documents).
"""
import logging
from typing import List

from docx import Document

from common.uploads import DOCX_MIME
from contract_analysis.exceptions import AnalysisServiceError

logger = logging.getLogger(__name__)


def extract_text_from_txt(path: str) -> str:
    """Read a text file as UTF-8, replacing undecodable bytes."""
    with open(path, "rb") as f:
        return f.read().decode("utf-8", errors="replace")


def extract_text_from_docx(path: str) -> str:
    """Extract paragraphs and table cells from a .docx file."""
    try:
        doc = Document(path)
    except Exception as e:
        raise AnalysisServiceError(f"Failed to read Word document: {e}") from e

    parts: List[str] = [p.text for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)


def read_document_text(path: str, mime_type: str, max_chars: int = 60000) -> str:
    """
    Return the document's text, truncated to ``max_chars``.

    Word documents are detected by MIME type or the .docx extension; anything
    else is read as plain text.
    """
    if mime_type == DOCX_MIME or path.lower().endswith(".docx"):
        text = extract_text_from_docx(path)
    else:
        text = extract_text_from_txt(path)

    if len(text) > max_chars:
        logger.info("Truncating document text from %d to %d characters", len(text), max_chars)
        text = text[:max_chars]
    return text
