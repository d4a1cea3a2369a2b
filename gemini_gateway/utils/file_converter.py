from __future__ import annotations
from pathlib import Path
from typing import Optional, Union
import base64
import mimetypes

from ..models.providers.base import InlinePart

DEFAULT_MIME_TYPE = "application/octet-stream"


def detect_mime_type(content_type: Optional[str], filename: Optional[str] = None) -> str:
    """Prefer the declared content type; fall back to a guess from the file name."""
    if content_type:
        content_type = content_type.split(";", 1)[0].strip().lower()
    if content_type and content_type != DEFAULT_MIME_TYPE:
        return content_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def to_base64(file_data: Union[str, Path, bytes]) -> str:
    if isinstance(file_data, (str, Path)):
        path = Path(file_data)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_data}")
        return base64.b64encode(path.read_bytes()).decode('utf-8')

    elif isinstance(file_data, bytes):
        return base64.b64encode(file_data).decode('utf-8')

    else:
        raise ValueError(f"Unsupported file data type: {type(file_data)}")


def to_inline_part(file_data: Union[str, Path, bytes], mime_type: Optional[str] = None, filename: Optional[str] = None) -> InlinePart:
    return InlinePart(
        data=to_base64(file_data),
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        filename=filename,
    )
