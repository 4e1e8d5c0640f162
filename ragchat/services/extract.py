"""Text extraction from stored files (PDF, TXT, MD and images via OCR)."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from ragchat.core.errors import ExtractionFailed, UnsupportedFileType

ALLOWED_EXTENSIONS = {".pdf", ".txt", ".md", ".png", ".jpg", ".jpeg", ".webp"}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB

OCR_LANGUAGE = "eng"


def normalize_file_type(file_type: str) -> str:
    """``".PDF"`` -> ``"pdf"``."""
    return file_type.strip().lower().lstrip(".")


def extract_text(file_path: str | Path, file_type: str) -> str:
    """Extract plain text from a stored file.

    Args:
        file_path: Path of the file on disk.
        file_type: Extension without the dot (a leading dot is tolerated).

    Returns:
        Extracted text as a string.

    Raises:
        UnsupportedFileType: If the file type has no extractor.
        ExtractionFailed: If the parser or OCR engine fails.
    """
    kind = normalize_file_type(file_type)
    extractor = _EXTRACTORS.get(kind)
    if extractor is None:
        raise UnsupportedFileType(kind, ALLOWED_EXTENSIONS)

    path = Path(file_path)
    try:
        return extractor(path)
    except Exception as exc:
        raise ExtractionFailed(str(path), exc) from exc


def _extract_plain(path: Path) -> str:
    # Bytes as-is; read_text() would translate newlines
    return path.read_bytes().decode("utf-8")


def _extract_pdf(path: Path) -> str:
    from pypdf import PdfReader

    reader = PdfReader(path)
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n".join(pages)


def _extract_image(path: Path) -> str:
    import pytesseract
    from PIL import Image

    with Image.open(path) as image:
        return pytesseract.image_to_string(image, lang=OCR_LANGUAGE)


_EXTRACTORS: dict[str, Callable[[Path], str]] = {
    "txt": _extract_plain,
    "md": _extract_plain,
    "pdf": _extract_pdf,
    "png": _extract_image,
    "jpg": _extract_image,
    "jpeg": _extract_image,
    "webp": _extract_image,
}
