"""
Modulo de servicio para Amazon S3 (Simple Storage Service).

Este modulo encapsula TODA la comunicacion con AWS S3. Ningun otro archivo
del proyecto deberia llamar directamente a boto3; todo pasa por este
servicio, lo que facilita testear el codigo (solo hay que mockear esto).

A diferencia de un backend que recibe los bytes del archivo y los sube el
mismo, SpreadMarket usa **URLs pre-firmadas** (pre-signed URLs):

    1. El frontend pide permiso: POST /api/uploads/presigned-url
    2. El backend firma una URL de PUT valida por 1 hora para UNA key.
    3. El navegador sube el archivo directo a S3 con esa URL.

Lo mismo para descargas: despues de un pago, el backend firma una URL de
GET valida por 24 horas. La autorizacion va "horneada" en la firma de la
URL; S3 la rechaza sola cuando expira, sin consultar a nuestra app.

Estructura de keys:
    uploads/{user_id}/{timestamp_ms}-{filename}

Patron de diseno: Servicio + Singleton implicito + Inyeccion de dependencias
---------------------------------------------------------------------------
El constructor acepta un `client` opcional: en produccion se crea el
cliente real de boto3; en tests se pasa el de moto o un MagicMock.
"""

from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config

from spreadmarket.config import settings


class S3Service:
    """
    Servicio que encapsula las operaciones con Amazon S3.

    Atributos:
        client: Cliente de boto3 para S3.
        bucket (str): Nombre del bucket donde viven los archivos.
    """

    def __init__(self, client=None, bucket: str | None = None):
        # Firmamos con SigV4: es la unica version aceptada en regiones
        # nuevas de AWS y la que soporta expiraciones de hasta 7 dias.
        self.client = client or boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            config=Config(signature_version="s3v4"),
        )
        self.bucket = bucket or settings.S3_BUCKET

    def create_upload_url(self, key: str, content_type: str, expires_in: int = 3600) -> str:
        """
        Genera una URL pre-firmada de PUT para subir UN objeto.

        El ContentType forma parte de la firma: si el navegador sube con
        otro Content-Type, S3 rechaza la peticion.

        Parametros:
            key (str): Key del objeto en S3.
            content_type (str): Tipo MIME declarado del archivo.
            expires_in (int): Segundos de validez de la URL.

        Retorna:
            str: URL pre-firmada.
        """
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def create_download_url(self, key: str, expires_in: int = 3600) -> str:
        """Genera una URL pre-firmada de GET para descargar un objeto."""
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    def key_from_file_url(self, file_url: str) -> str:
        """
        Deriva la key de S3 a partir de la URL publica de un archivo.

        Soporta los dos estilos de URL de S3:
            https://bucket.s3.us-east-1.amazonaws.com/uploads/u1/1-a.xlsx
            https://s3.us-east-1.amazonaws.com/bucket/uploads/u1/1-a.xlsx
        Ambos retornan "uploads/u1/1-a.xlsx". Si se pasa una key directa
        (sin esquema), se retorna tal cual.
        """
        path = unquote(urlparse(file_url).path).lstrip("/")
        bucket_prefix = f"{self.bucket}/"
        if path.startswith(bucket_prefix):
            path = path[len(bucket_prefix):]
        return path


# Instancia global del servicio S3 (Singleton implicito).
s3_service = S3Service()


def get_storage() -> S3Service:
    """Dependencia de FastAPI para inyectar el servicio S3."""
    return s3_service
