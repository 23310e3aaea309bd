# Overview: Product image storage on the local filesystem.

"""
Upload Service

Images land in UPLOAD_FOLDER/products and are referenced by a relative URL
(/uploads/products/<file>) that the app serves back. Request size is capped
by MAX_CONTENT_LENGTH; Werkzeug answers 413 before any code here runs.
"""

from __future__ import annotations

import os
import time

from flask import current_app
from werkzeug.datastructures import FileStorage

from ..errors import ValidationError


URL_PREFIX = "/uploads/"
PRODUCTS_SUBDIR = "products"


def _products_dir() -> str:
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], PRODUCTS_SUBDIR)
    os.makedirs(path, exist_ok=True)
    return path


def _extension_for(mimetype: str) -> str:
    # "image/svg+xml" -> "svg"
    subtype = mimetype.split("/", 1)[1] if "/" in mimetype else ""
    return subtype.split("+", 1)[0].lower() or "bin"


def save_product_image(file: FileStorage) -> str:
    """
    Store an uploaded image and return its public URL.

    Raises ValidationError if the upload is not an image.
    """
    mimetype = (file.mimetype or "").lower()
    if not mimetype.startswith("image/"):
        raise ValidationError("Not an image! Please upload only images.")

    directory = _products_dir()
    stem = f"product-{int(time.time() * 1000)}"
    ext = _extension_for(mimetype)

    filename = f"{stem}.{ext}"
    counter = 1
    while os.path.exists(os.path.join(directory, filename)):
        filename = f"{stem}-{counter}.{ext}"
        counter += 1

    file.save(os.path.join(directory, filename))
    current_app.logger.info("Stored product image %s", filename)
    return f"{URL_PREFIX}{PRODUCTS_SUBDIR}/{filename}"


def path_for_url(url: str | None) -> str | None:
    """Filesystem path for an /uploads/... URL, or None if it points elsewhere."""
    if not url or not url.startswith(URL_PREFIX):
        return None
    root = os.path.realpath(current_app.config["UPLOAD_FOLDER"])
    path = os.path.realpath(os.path.join(root, url[len(URL_PREFIX):]))
    if os.path.commonpath([root, path]) != root:
        return None
    return path


def delete_image(url: str | None) -> bool:
    """
    Best-effort removal of a stored image. Failures are logged, never raised.
    """
    path = path_for_url(url)
    if path is None:
        return False
    try:
        os.remove(path)
        return True
    except OSError as e:
        current_app.logger.warning("Failed to delete image %s: %s", url, e)
        return False
