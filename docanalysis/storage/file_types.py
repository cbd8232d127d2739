"""Content-based detection of the artifact types the pipeline accepts."""

import zipfile
from pathlib import Path

from docanalysis.database.models import FileType

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ALLOWED_TYPES: dict[str, FileType] = {
    PDF_MIME: FileType.PDF,
    DOCX_MIME: FileType.DOCX,
    XLSX_MIME: FileType.XLSX,
}

_PDF_SIGNATURE = b"%PDF"
_ZIP_SIGNATURE = b"PK\x03\x04"


def detect_mime_type(path: Path) -> str | None:
    """Sniff the MIME type of a file from its bytes.

    Office Open XML documents are ZIP containers, so DOCX and XLSX are told
    apart by their main part. Returns None for anything else.
    """
    with path.open("rb") as handle:
        head = handle.read(8)
    if head.startswith(_PDF_SIGNATURE):
        return PDF_MIME
    if not head.startswith(_ZIP_SIGNATURE):
        return None
    try:
        with zipfile.ZipFile(path) as archive:
            names = set(archive.namelist())
    except zipfile.BadZipFile:
        return None
    if "word/document.xml" in names:
        return DOCX_MIME
    if "xl/workbook.xml" in names:
        return XLSX_MIME
    return None


def file_type_for_mime(mime_type: str | None) -> FileType | None:
    if mime_type is None:
        return None
    return ALLOWED_TYPES.get(mime_type)
