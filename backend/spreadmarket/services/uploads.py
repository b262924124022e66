"""
Autorizacion de subidas y descargas (URLs pre-firmadas).

- request_upload_grant: valida tipo/tamano declarados y firma una URL de
  PUT para uploads/{actor_id}/{timestamp_ms}-{file_name}.
- request_download_grant: firma una URL de GET con expiracion.

La key es deterministica por peticion; solo colisiona si el mismo usuario
pide dos URLs para el mismo nombre de archivo en el mismo milisegundo.
"""

import os
import time
from dataclasses import dataclass

from spreadmarket.config import settings
from spreadmarket.exceptions import FileTooLargeError, InvalidFileTypeError, ValidationError
from spreadmarket.services.s3 import S3Service


@dataclass
class UploadGrant:
    url: str
    key: str


def build_upload_key(actor_id: str, file_name: str, timestamp_ms: int | None = None) -> str:
    # basename elimina rutas: "../../etc/passwd" -> "passwd"
    safe_name = os.path.basename(file_name) or "unknown"
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{settings.UPLOAD_PREFIX}/{actor_id}/{timestamp_ms}-{safe_name}"


def request_upload_grant(
    storage: S3Service,
    actor_id: str,
    file_name: str,
    file_type: str,
    file_size: int,
) -> UploadGrant:
    if file_type not in settings.ALLOWED_MIME_TYPES:
        raise InvalidFileTypeError(file_type, list(settings.ALLOWED_MIME_TYPES))
    if file_size <= 0:
        raise ValidationError("File size must be greater than zero")
    if file_size > settings.MAX_FILE_SIZE:
        raise FileTooLargeError(file_size, settings.MAX_FILE_SIZE)

    key = build_upload_key(actor_id, file_name)
    url = storage.create_upload_url(key, file_type, expires_in=settings.UPLOAD_URL_TTL_SECONDS)
    return UploadGrant(url=url, key=key)


def request_download_grant(storage: S3Service, storage_key: str, ttl_seconds: int) -> str:
    return storage.create_download_url(storage_key, expires_in=ttl_seconds)
