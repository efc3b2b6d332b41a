"""Turn uploaded files and inline images into message content parts."""
import base64
import io
import logging
from typing import BinaryIO, Iterable, Optional, Protocol

from pypdf import PdfReader

from chathub.schemas.chat import ContentPart, ImagePart, TextPart

logger = logging.getLogger(__name__)


class Upload(Protocol):
    filename: Optional[str]
    content_type: Optional[str]
    file: BinaryIO


def file_label(filename: str) -> str:
    return f"[Contents of file {filename}]:\n"


def extract_pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def upload_to_part(filename: str, content_type: str, data: bytes) -> Optional[ContentPart]:
    """
    Convert one uploaded file.

    Returns:
        Text part for PDF and text/* files, image part (data URL) for
        image/* files, None for anything else
    """
    if content_type == "application/pdf":
        return TextPart(text=file_label(filename) + extract_pdf_text(data))
    if content_type.startswith("text/"):
        return TextPart(text=file_label(filename) + data.decode("utf-8", errors="replace"))
    if content_type.startswith("image/"):
        encoded = base64.b64encode(data).decode("ascii")
        return ImagePart(url=f"data:{content_type};base64,{encoded}")
    return None


def build_turn_content(
    content: list[ContentPart],
    images: Iterable[str] = (),
    uploads: Iterable[Upload] = (),
) -> list[ContentPart]:
    """Current turn = client parts + inline images + converted uploads, in that order."""
    parts: list[ContentPart] = list(content)
    parts.extend(ImagePart(url=image) for image in images)

    for upload in uploads:
        filename = upload.filename or "file"
        content_type = upload.content_type or "application/octet-stream"
        part = upload_to_part(filename, content_type, upload.file.read())
        if part is None:
            logger.warning(f"Skipping unsupported attachment: {filename} ({content_type})")
            continue
        parts.append(part)

    return parts
