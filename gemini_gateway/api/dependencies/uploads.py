"""
Temporary storage for uploaded files.

An upload is copied into the upload directory for the duration of one request
and removed when the ``stored_upload`` block exits, whether the model call
succeeded or not.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fastapi import UploadFile

from gemini_gateway.utils.file_converter import detect_mime_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredUpload:
    path: Path
    mime_type: str
    filename: Optional[str]
    size: int


def safe_unlink(path: Optional[Path]):
    """Remove a file if it still exists; a failed removal is logged, not raised."""
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary upload {path}: {e}")


@contextmanager
def stored_upload(upload: UploadFile, upload_dir: Path) -> Iterator[StoredUpload]:
    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = os.path.splitext(upload.filename or "")[1]

    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, dir=upload_dir, suffix=suffix) as tmp_file:
            tmp_path = Path(tmp_file.name)
            upload.file.seek(0)
            shutil.copyfileobj(upload.file, tmp_file)
            size = tmp_file.tell()

        stored = StoredUpload(
            path=tmp_path,
            mime_type=detect_mime_type(upload.content_type, upload.filename),
            filename=upload.filename,
            size=size,
        )
        logger.debug(f"Stored upload {upload.filename!r} ({stored.mime_type}, {size} bytes) at {tmp_path}")
        yield stored
    finally:
        safe_unlink(tmp_path)
