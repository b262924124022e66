"""
Modulo de rutas para subida de archivos.

Flujo de publicacion de una hoja de calculo:

    1. POST /api/uploads/validate       -> valida el archivo   [ESTE ARCHIVO]
    2. POST /api/uploads/presigned-url  -> URL firmada de PUT  [ESTE ARCHIVO]
    3. PUT <presignedUrl>               -> el navegador sube directo a S3
    4. POST /api/listings               -> se publica con la fileUrl

Seguridad implementada:
-----------------------
- Sesion obligatoria en ambos endpoints.
- Lista blanca de tipos (xlsx, xls, csv) y limite de 50 MiB.
- Sanitizacion del nombre con os.path.basename() (path traversal).
- Escaneo por firmas + magic bytes antes de aceptar el archivo.
- Rate limiting: validate admite 5 peticiones por minuto POR USUARIO
  (la respuesta 429 informa cuantas quedan y cuando se reinicia), y
  presigned-url 20 por minuto por IP.
- Lectura parcial: leemos como maximo MAX_FILE_SIZE + 1 bytes, asi un
  archivo gigante nunca se carga completo en memoria.
"""

import logging
import os
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.requests import Request

from spreadmarket.auth import get_current_user
from spreadmarket.config import settings
from spreadmarket.exceptions import FileTooLargeError, RateLimitedError, ValidationError
from spreadmarket.limiter import RateLimiter, get_rate_limiter, limiter
from spreadmarket.models.entities import User
from spreadmarket.models.schemas import (
    FileValidationResponse,
    PresignedUrlRequest,
    PresignedUrlResponse,
    ScanSummary,
)
from spreadmarket.services.s3 import S3Service, get_storage
from spreadmarket.services.uploads import request_upload_grant
from spreadmarket.services.validator import validate_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/uploads/presigned-url", response_model=PresignedUrlResponse)
@limiter.limit("20/minute")
def presigned_url(
    request: Request,
    body: PresignedUrlRequest,
    user: User = Depends(get_current_user),
    storage: S3Service = Depends(get_storage),
):
    """
    Firma una URL de PUT para que el navegador suba el archivo a S3.

    Errores:
        400: tipo no permitido o tamano fuera de rango (> 50 MiB).
    """
    grant = request_upload_grant(storage, user.id, body.file_name, body.file_type, body.file_size)
    return PresignedUrlResponse(presigned_url=grant.url, key=grant.key)


@router.post("/api/uploads/validate", response_model=FileValidationResponse)
async def validate(
    file: UploadFile | None = File(default=None),
    user: User = Depends(get_current_user),
    limits: RateLimiter = Depends(get_rate_limiter),
):
    """
    Valida un archivo antes de publicarlo (multipart/form-data, campo `file`).

    Retorna:
        FileValidationResponse con el tipo detectado y el resultado del escaneo.

    Errores:
        400: sin archivo, tipo invalido, demasiado grande o escaneo fallido
             (en ese caso `details.threats` lista las amenazas).
        429: mas de 5 validaciones por minuto para este usuario.
    """

    # --- Paso 1: Rate limit por usuario ---
    rate = limits.check(
        f"upload_validate_{user.id}",
        settings.VALIDATE_RATE_LIMIT,
        settings.VALIDATE_RATE_WINDOW_MS,
    )
    if not rate.allowed:
        logger.warning(f"Validate rate limit exceeded for user {user.id}")
        raise RateLimitedError(rate.remaining_requests, rate.reset_time)

    if file is None:
        raise ValidationError("No file provided")

    # --- Paso 2: Leer de forma segura (maximo MAX_FILE_SIZE + 1 bytes) ---
    data = await file.read(settings.MAX_FILE_SIZE + 1)
    if len(data) > settings.MAX_FILE_SIZE:
        raise FileTooLargeError(len(data), settings.MAX_FILE_SIZE)

    # --- Paso 3: Sanitizar el nombre y validar ---
    safe_filename = os.path.basename(file.filename or "unknown")
    declared_type = file.content_type or ""

    result = validate_upload(data, safe_filename, declared_type)
    if not result.is_valid:
        details = {"threats": result.threats} if result.threats else {}
        raise ValidationError(result.error, details=details)

    return FileValidationResponse(
        valid=True,
        file_name=safe_filename,
        file_size=len(data),
        file_type=declared_type,
        detected_type=result.detected_type,
        scan_result=ScanSummary(safe=True, scanned_at=datetime.now(timezone.utc)),
    )
