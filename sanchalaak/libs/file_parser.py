"""Turn uploaded submission files into plain text."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from sanchalaak.errors import GradingError, ParseFailure, UnsupportedFormat

LOG = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".pdf", ".docx", ".xlsx")
MAX_FILES = 100
MAX_FILE_BYTES = 10 * 1024 * 1024

SKIP_NAMES = {"__pycache__", ".git", ".DS_Store", "Thumbs.db"}


@dataclass
class ParsedContent:
    """Text extracted from one file."""

    text: str
    filename: str
    type: str


def _parse_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _parse_pdf(data: bytes) -> str:
    import fitz  # PyMuPDF

    with fitz.open(stream=data, filetype="pdf") as doc:
        page_texts = [doc.load_page(idx).get_text("text") for idx in range(doc.page_count)]
    return "\n".join(page_texts)


def _parse_docx(data: bytes) -> str:
    import docx

    document = docx.Document(io.BytesIO(data))
    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(lines)


def _parse_xlsx(data: bytes) -> str:
    from openpyxl import load_workbook

    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        blocks = []
        for sheet in workbook.worksheets:
            rows = []
            for row in sheet.iter_rows(values_only=True):
                cells = ["" if value is None else str(value) for value in row]
                if any(cells):
                    rows.append("\t".join(cells))
            blocks.append(f"Sheet: {sheet.title}\n" + "\n".join(rows))
    finally:
        workbook.close()
    return "\n\n".join(blocks)


_PARSERS = {
    ".txt": _parse_text,
    ".pdf": _parse_pdf,
    ".docx": _parse_docx,
    ".xlsx": _parse_xlsx,
}


def is_supported(filename: str) -> bool:
    return Path(filename).suffix.lower() in _PARSERS


def parse_file(data: bytes, filename: str) -> ParsedContent:
    """
    Extract plain text from raw file bytes.

    Raises:
        UnsupportedFormat: If the extension is not one of SUPPORTED_EXTENSIONS
        ParseFailure: If the file cannot be read or contains no text
    """
    suffix = Path(filename).suffix.lower()
    parser = _PARSERS.get(suffix)
    if parser is None:
        raise UnsupportedFormat(filename, SUPPORTED_EXTENSIONS)

    try:
        text = parser(data)
    except Exception as exc:  # pylint: disable=broad-except
        raise ParseFailure(filename, str(exc)) from exc

    text = text.strip()
    if not text:
        raise ParseFailure(filename, "no readable text")
    return ParsedContent(text=text, filename=filename, type=suffix.lstrip("."))


def parse_path(path: Path, max_file_bytes: int = MAX_FILE_BYTES) -> ParsedContent:
    """Read and parse a file from disk."""
    path = Path(path)
    if not is_supported(path.name):
        raise UnsupportedFormat(path.name, SUPPORTED_EXTENSIONS)
    try:
        size = path.stat().st_size
        if size > max_file_bytes:
            raise ParseFailure(path.name, f"file is {size} bytes, limit is {max_file_bytes}")
        data = path.read_bytes()
    except OSError as exc:
        raise ParseFailure(path.name, str(exc)) from exc
    return parse_file(data, path.name)


def find_submission_files(directory: Path) -> List[Path]:
    """List candidate submission files (hidden and cache files skipped), sorted by name."""
    files = [
        item for item in Path(directory).iterdir()
        if item.is_file() and not item.name.startswith('.') and item.name not in SKIP_NAMES
    ]
    return sorted(files)


def load_submission_files(paths: Iterable[Union[str, Path]],
                          max_files: int = MAX_FILES,
                          max_file_bytes: int = MAX_FILE_BYTES
                          ) -> Tuple[List[ParsedContent], List[GradingError]]:
    """
    Parse a batch of files without letting one bad file stop the rest.

    Returns:
        Parsed contents and the per-file errors, each in input order

    Raises:
        ValueError: If more than max_files paths are given
    """
    paths = [Path(p) for p in paths]
    if len(paths) > max_files:
        raise ValueError(f"Maximum {max_files} files allowed at once, got {len(paths)}")

    parsed: List[ParsedContent] = []
    failures: List[GradingError] = []
    for path in paths:
        try:
            parsed.append(parse_path(path, max_file_bytes))
        except (UnsupportedFormat, ParseFailure) as e:
            LOG.warning("Skipping %s: %s", path.name, e)
            failures.append(e)
    LOG.info("Parsed %d of %d files", len(parsed), len(paths))
    return parsed, failures
