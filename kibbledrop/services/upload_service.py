# kibbledrop/services/upload_service.py
import base64
import os
import time

from kibbledrop.utils.settings import UPLOAD_DIR, MAX_UPLOAD_BYTES
from kibbledrop.utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
DOCUMENT_TYPES = dict(IMAGE_TYPES, **{"application/pdf": "pdf"})


def check_upload(content_type: str | None, data: bytes, allowed: dict = IMAGE_TYPES, max_bytes: int | None = None) -> str:
    """Returns the file extension for an accepted upload."""
    if not data:
        raise ValueError("No file uploaded")
    ext = allowed.get((content_type or "").lower())
    if ext is None:
        names = ", ".join(sorted({v.upper() for v in allowed.values()}))
        raise ValueError(f"Invalid file type. Only {names} are allowed.")
    limit = max_bytes or MAX_UPLOAD_BYTES
    if len(data) > limit:
        raise ValueError(f"File too large. Maximum size is {limit // (1024 * 1024)}MB.")
    return ext


def to_data_uri(content_type: str, data: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


class UploadService:
    """Product images on local disk, served under /uploads."""

    def __init__(self, upload_dir: str | None = None):
        self.upload_dir = upload_dir or UPLOAD_DIR

    def save_product_image(self, content_type: str | None, data: bytes) -> dict:
        ext = check_upload(content_type, data)
        os.makedirs(self.upload_dir, exist_ok=True)

        filename = f"product_{int(time.time() * 1000)}.{ext}"
        path = os.path.join(self.upload_dir, filename)
        with open(path, "wb") as fh:
            fh.write(data)

        logger.info(f"Stored upload {path} ({len(data)} bytes)")
        return {"url": f"/uploads/{filename}", "filename": filename, "size": len(data)}
