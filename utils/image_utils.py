import io
import os
import time
import random
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Accepted upload formats and the extension they are stored under, keyed by PIL format
FORMAT_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "GIF": ".gif",
    "WEBP": ".webp",
    "BMP": ".bmp",
}


class InvalidImageError(ValueError):
    """Uploaded bytes are not an image Pillow can read."""


def detect_image_format(content: bytes) -> str:
    """
    Returns the PIL format name of the image in `content`.

    Raises:
        InvalidImageError: if the data is empty, not a readable image, or in a
            format missing from FORMAT_EXTENSIONS.
    """
    if not content:
        raise InvalidImageError("Uploaded file is empty.")
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
            image_format = img.format
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise InvalidImageError(f"Uploaded file is not a valid image: {e}") from e
    if image_format not in FORMAT_EXTENSIONS:
        raise InvalidImageError(f"Unsupported image format: {image_format}")
    return image_format


def unique_upload_name(image_format: str) -> str:
    """<millis>-<random><ext>. The extension follows the detected format, never the client's file name."""
    ext = FORMAT_EXTENSIONS.get(image_format)
    if ext is None:
        raise InvalidImageError(f"Unsupported image format: {image_format}")
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{unique_suffix}{ext}"


def save_uploaded_image(content: bytes, original_filename: str, upload_dir: str) -> str:
    """Validates and writes an uploaded image, returning the stored file name."""
    image_format = detect_image_format(content)
    os.makedirs(upload_dir, exist_ok=True)
    file_name = unique_upload_name(image_format)
    with open(os.path.join(upload_dir, file_name), "wb") as f:
        f.write(content)
    logger.info(f"Stored uploaded {image_format} image '{original_filename}' as {file_name}.")
    return file_name
