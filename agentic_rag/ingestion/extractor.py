"""Text extraction for uploaded knowledge-base files."""

import logging
from pathlib import Path

import fitz

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".md"}
PDF_EXTENSIONS = {".pdf"}


class FileProcessingError(RuntimeError):
    """Raised when a supported file cannot be read or parsed."""

    def __init__(self, file_name: str, reason: str):
        super().__init__(f"Failed to process {file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in TEXT_EXTENSIONS | PDF_EXTENSIONS


def _read_pdf(path: Path) -> str:
    with fitz.open(path) as pdf:
        return "\n\n".join(page.get_text("text") for page in pdf)


def extract_text(path: Path | str) -> str | None:
    """Extract the text of a .txt/.md/.pdf file.

    Returns None for unsupported file types so the caller can skip them.
    Raises FileProcessingError when a supported file cannot be read.
    """
    path = Path(path)
    if not is_supported(path):
        return None

    try:
        if path.suffix.lower() in PDF_EXTENSIONS:
            return _read_pdf(path)
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise FileProcessingError(path.name, "file is not valid UTF-8 text") from e
    except (OSError, RuntimeError, ValueError) as e:
        # PyMuPDF raises RuntimeError subclasses for corrupt or encrypted PDFs
        raise FileProcessingError(path.name, str(e) or e.__class__.__name__) from e
