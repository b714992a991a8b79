import os
import posixpath
from typing import Optional


def file_extension(filename: Optional[str], default: str = "jpg") -> str:
    """Extension of ``filename`` without the dot, or ``default`` when it has none."""
    ext = os.path.splitext(filename or "")[1].lstrip(".")
    return ext or default


def original_key(image_id: str, ext: str, subdir: str = "uploads") -> str:
    return posixpath.join(subdir, f"{image_id}.{ext}")


def compressed_id(image_id: str) -> str:
    return f"{image_id}-compressed"


def compressed_key(image_id: str, ext: str, subdir: str = "compressed") -> str:
    return posixpath.join(subdir, f"{compressed_id(image_id)}.{ext}")


def key_to_url(key: str) -> str:
    return "/" + key.lstrip("/")


def url_to_key(url: str) -> str:
    return url.lstrip("/")


def replace_extension(name: str, ext: str) -> str:
    stem, _ = os.path.splitext(name)
    return f"{stem or name}.{ext}"
