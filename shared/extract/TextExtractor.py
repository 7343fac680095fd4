"""Plain text extraction from stored upload files.

Each supported format has a loader that knows its MIME types and file suffixes.
TextExtractor picks the loader by MIME type first and falls back to the file suffix.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

import fitz
from docx import Document as DocxDocument

from shared.exceptions.errors import ExtractionError

WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


class BaseLoader(ABC):
    """Common loader interface."""

    suffixes: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()

    def can_load(self, path: Path, mime_type: str | None) -> bool:
        if mime_type and mime_type.lower() in self.mime_types:
            return True
        return path.suffix.lower() in self.suffixes

    @abstractmethod
    def load(self, path: Path) -> str:
        """Return the raw text of the file at path."""
        pass


class TextLoader(BaseLoader):
    suffixes = (".txt", ".md", ".markdown")
    mime_types = ("text/plain", "text/markdown")

    def load(self, path: Path) -> str:
        return path.read_bytes().decode("utf-8", errors="ignore")


class PDFLoader(BaseLoader):
    suffixes = (".pdf",)
    mime_types = ("application/pdf",)

    def load(self, path: Path) -> str:
        raw = path.read_bytes()
        with fitz.open(stream=raw, filetype="pdf") as doc:
            pages = [page.get_text("text", sort=True) for page in doc]
        return "\n\n".join(pages)


class DocxLoader(BaseLoader):
    suffixes = (".docx",)
    mime_types = ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",)

    def load(self, path: Path) -> str:
        document = DocxDocument(str(path))
        paragraphs = [para.text for para in document.paragraphs if para.text.strip()]
        # table cells carry text too
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    paragraphs.append(" | ".join(cells))
        return "\n\n".join(paragraphs)


class LegacyDocLoader(BaseLoader):
    """Binary Word 97-2003 files are accepted on upload but cannot be parsed."""

    suffixes = (".doc",)
    mime_types = ("application/msword",)

    def load(self, path: Path) -> str:
        raise ExtractionError(
            f"Legacy Word format is not supported for text extraction: '{path.name}'. Convert it to DOCX or PDF."
        )


class TextExtractor:
    """Turns a stored file into normalised plain text."""

    def __init__(self, logger: logging.Logger | None = None, loaders: list[BaseLoader] | None = None) -> None:
        self.logging = logger or logging.getLogger(__name__)
        self._loaders = loaders or [PDFLoader(), DocxLoader(), LegacyDocLoader(), TextLoader()]

    def get_loader(self, path: Path, mime_type: str | None = None) -> BaseLoader:
        for loader in self._loaders:
            if mime_type and mime_type.lower() in loader.mime_types:
                return loader
        for loader in self._loaders:
            if loader.can_load(path, None):
                return loader
        raise ExtractionError(f"Unsupported file type '{mime_type or path.suffix}' for '{path.name}'.")

    def extract(self, path: str | Path, mime_type: str | None = None) -> str:
        """Extract the text of a file.

        Args:
            path (str | Path): Location of the stored file.
            mime_type (str | None): Declared MIME type, the suffix is used when missing or unknown.

        Returns:
            str: The extracted text with whitespace collapsed. Empty if the file holds no text.

        Raises:
            ExtractionError: If the file is missing, of an unsupported type or cannot be parsed.
        """
        path = Path(path)
        if not path.is_file():
            raise ExtractionError(f"File not found: '{path}'.")

        loader = self.get_loader(path, mime_type)
        try:
            raw_text = loader.load(path)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(f"Failed to extract text from '{path.name}': {exc}") from exc

        text = normalize_whitespace(raw_text)
        self.logging.debug(
            "Extracted %d characters from '%s' using %s.", len(text), path.name, type(loader).__name__
        )
        return text
