# Overview: Filesystem storage for deposit receipt uploads.

from __future__ import annotations

import os
import secrets

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import InvalidInputError
from ..time_utils import station_now

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "pdf"}
PUBLIC_PREFIX = "/uploads/receipts"


def upload_dir() -> str:
    return current_app.config["UPLOAD_DIR"]


def _extension(filename: str) -> str:
    safe = secure_filename(filename or "")
    if "." not in safe:
        raise InvalidInputError("Receipt file must have an extension")
    ext = safe.rsplit(".", 1)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidInputError(f"Receipt type .{ext} not allowed")
    return ext


def save_receipt(file: FileStorage) -> str:
    """
    Write an uploaded receipt under UPLOAD_DIR and return its public path.

    The stored name is receipt-<timestamp>-<random>.<ext>; the client's file
    name is only used for the extension. BASE_URL, when set, prefixes the path.
    """
    if file is None or not file.filename:
        raise InvalidInputError("Receipt image required")

    ext = _extension(file.filename)
    directory = upload_dir()
    os.makedirs(directory, exist_ok=True)

    stamp = station_now().strftime("%Y%m%d%H%M%S")
    file_name = f"receipt-{stamp}-{secrets.token_hex(4)}.{ext}"
    file.save(os.path.join(directory, file_name))

    current_app.logger.info("Stored receipt %s", file_name)

    base_url = (current_app.config.get("BASE_URL") or "").rstrip("/")
    return f"{base_url}{PUBLIC_PREFIX}/{file_name}"
