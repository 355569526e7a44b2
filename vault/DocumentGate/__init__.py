"""
DocumentGate - Plain-text extraction for Vault documents.

Supported formats:
- .txt / .md: read as UTF-8
- .docx: paragraphs via python-docx
- .pdf: page text via pdfplumber

Anything else fails with UnsupportedType. Extracted text has its whitespace
collapsed to single spaces.
"""

import os
import re
from typing import Callable, Dict

import docx
import pdfplumber

from vault.shared.errors import InternalError, NotFound, UnsupportedType
from vault.shared.gate import GateLogger, build_health_status

_log = GateLogger.get("DocumentGate")

_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


def _read_plain(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


def _read_docx(path: str) -> str:
    document = docx.Document(path)
    return "\n".join(p.text for p in document.paragraphs)


def _read_pdf(path: str) -> str:
    text_parts = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)
    return "\n\n".join(text_parts)


EXTRACTORS: Dict[str, Callable[[str], str]] = {
    ".txt": _read_plain,
    ".md": _read_plain,
    ".docx": _read_docx,
    ".pdf": _read_pdf,
}


def is_supported(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in EXTRACTORS


def extract_text(path: str) -> str:
    """
    Extract plain text from a document.

    Args:
        path: Absolute path of an already-authorized file

    Returns:
        Whitespace-normalized text

    Raises:
        NotFound: if the file does not exist
        UnsupportedType: if no extractor handles the extension
        InternalError: if the extractor fails
    """
    ext = os.path.splitext(path)[1].lower()
    extractor = EXTRACTORS.get(ext)
    if extractor is None:
        raise UnsupportedType(f"Unsupported file type: {ext or '(none)'}")

    if not os.path.isfile(path):
        raise NotFound(f"Document not found: {os.path.basename(path)}")

    try:
        content = extractor(path)
    except Exception as e:
        _log.error(f"Error extracting text from {path}: {e}")
        raise InternalError(f"Failed to read {os.path.basename(path)}") from e

    return clean_text(content)


def get_health_status() -> dict:
    return build_health_status(
        gate_name="DocumentGate",
        initialized=True,
        dependencies=["python-docx", "pdfplumber"],
        checks={},
        details={"extensions": sorted(EXTRACTORS)},
    )


__all__ = ["extract_text", "clean_text", "is_supported", "EXTRACTORS", "get_health_status"]
