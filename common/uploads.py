"""
Upload helpers: type checks, size checks, and per-request scratch files.
"""
import logging
import mimetypes
import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from contract_analysis.models import UploadedDocument

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"

ALLOWED_EXTENSIONS = {".pdf": PDF_MIME, ".docx": DOCX_MIME, ".txt": TEXT_MIME}
ALLOWED_MIME_TYPES = set(ALLOWED_EXTENSIONS.values())


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_allowed_document(filename: str, mimetype: Optional[str] = None) -> bool:
    """Lenient check: accept if either the extension or the MIME type is PDF/DOCX/TXT."""
    if not filename:
        return False
    mime = (mimetype or "").lower()
    return _extension(filename) in ALLOWED_EXTENSIONS or mime in ALLOWED_MIME_TYPES


def resolve_mime_type(fileobj: FileStorage) -> str:
    """Pick the MIME type to report for an upload, preferring the extension."""
    ext_mime = ALLOWED_EXTENSIONS.get(_extension(fileobj.filename))
    if ext_mime:
        return ext_mime
    mime = (fileobj.mimetype or "").lower()
    if mime and mime != "application/octet-stream":
        return mime
    guessed, _ = mimetypes.guess_type(fileobj.filename or "")
    return guessed or "application/octet-stream"


def upload_size(fileobj: FileStorage) -> int:
    """Size of the uploaded stream in bytes; the stream is rewound afterwards."""
    stream = fileobj.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


@contextmanager
def temporary_upload(fileobj: FileStorage, folder: str) -> Iterator[UploadedDocument]:
    """
    Save an upload under a unique scratch name and remove it afterwards.

    The name is ``<uuid>_<secure original name>`` so concurrent requests with
    the same file name never share a path.
    """
    os.makedirs(folder, exist_ok=True)
    original = fileobj.filename or "upload"
    safe_name = secure_filename(original) or f"upload{_extension(original)}"
    temp_path = os.path.join(folder, f"{uuid.uuid4().hex}_{safe_name}")

    size = upload_size(fileobj)
    fileobj.save(temp_path)
    try:
        yield UploadedDocument(
            path=temp_path,
            filename=original,
            size=size,
            mime_type=resolve_mime_type(fileobj),
        )
    finally:
        try:
            if os.path.exists(temp_path):
                os.remove(temp_path)
        except OSError as e:
            logger.warning("Could not remove scratch file %s: %s", temp_path, e)


def purge_old_files(folder: str, hours: int = 12) -> int:
    """Delete scratch files older than <hours>. Returns how many were removed."""
    if not os.path.isdir(folder):
        return 0
    cutoff = datetime.now() - timedelta(hours=hours)
    removed = 0
    for fname in os.listdir(folder):
        path = os.path.join(folder, fname)
        if os.path.isfile(path) and datetime.fromtimestamp(os.path.getmtime(path)) < cutoff:
            try:
                os.remove(path)
                removed += 1
            except OSError as e:
                logger.warning("Could not purge %s: %s", path, e)
    return removed
