"""
Modulo de validacion de archivos subidos.

Este servicio es la PRIMERA linea de defensa contra archivos maliciosos.
Antes de aceptar una hoja de calculo verifica, en orden de costo:

1. Tipo declarado: el Content-Type enviado por el cliente debe estar en la
   lista blanca (xlsx, xls, csv) y la extension del nombre debe coincidir
   con ese tipo. Es barato y rechaza la mayoria de errores honestos.
2. Tamano: mayor que 0 y hasta 50 MiB.
3. Escaneo por firmas (scanner.py): ejecutables y macros.
4. Tipo real por magic bytes (python-magic): aunque el escaner por firmas
   no detecte nada, si libmagic reconoce el contenido como un ejecutable
   el archivo se rechaza.

Por que no confiamos solo en el Content-Type?
---------------------------------------------
Porque el cliente puede enviarlo como quiera. Un atacante podria enviar un
ejecutable con Content-Type: text/csv y nombre "datos.csv". Los magic
bytes (la "firma" en los primeros bytes del archivo) revelan lo que el
archivo realmente es.

Patron de diseno: Resultado como dataclass
------------------------------------------
En vez de lanzar excepciones, retornamos un ValidationResult con is_valid,
el error y las amenazas encontradas; el endpoint decide la respuesta HTTP.
"""

import os
from dataclasses import dataclass, field

# python-magic: detecta tipos MIME usando libmagic (la libreria C del
# comando `file` de Linux).
import magic

from spreadmarket.config import settings
from spreadmarket.services.scanner import SecurityScanner, default_scanner

# Tipos que libmagic reporta para binarios ejecutables
EXECUTABLE_MIME_TYPES = {
    "application/x-dosexec",
    "application/x-msdownload",
    "application/x-executable",
    "application/x-pie-executable",
    "application/x-sharedlib",
    "application/x-mach-binary",
    "application/x-java-applet",
    "application/java-vm",
}


@dataclass
class ValidationResult:
    """
    Resultado de la validacion de un archivo.

    Atributos:
        is_valid (bool): True si el archivo paso todas las validaciones.
        mime_type (str): Tipo MIME declarado por el cliente.
        detected_type (str): Tipo MIME real detectado por magic bytes
            (vacio si la validacion fallo antes de llegar a ese paso).
        error (str): Descripcion del error si is_valid es False.
        threats (list[str]): Amenazas encontradas por el escaner.
    """
    is_valid: bool
    mime_type: str = ""
    detected_type: str = ""
    error: str = ""
    threats: list[str] = field(default_factory=list)


def extension_of(filename: str) -> str:
    """
    Extension en minusculas, con punto.

        "Presupuesto.XLSX" -> ".xlsx"
        "sin_extension"    -> ""
    """
    _, ext = os.path.splitext(filename)
    return ext.lower()


def is_allowed_type(filename: str, mime_type: str) -> bool:
    """True si el tipo MIME esta permitido y la extension le corresponde."""
    allowed_extensions = settings.ALLOWED_MIME_TYPES.get(mime_type)
    if allowed_extensions is None:
        return False
    return extension_of(filename) in allowed_extensions


def is_allowed_size(size: int) -> bool:
    return 0 < size <= settings.MAX_FILE_SIZE


def validate_upload(
    data: bytes,
    filename: str,
    declared_type: str,
    scanner: SecurityScanner = default_scanner,
) -> ValidationResult:
    """
    Valida una hoja de calculo subida (ver el docstring del modulo).

    Parametros:
        data (bytes): Contenido completo del archivo.
        filename (str): Nombre del archivo (ya sanitizado por el caller).
        declared_type (str): Content-Type enviado por el cliente.
        scanner (SecurityScanner): Escaner a usar; por defecto el de firmas.

    Retorna:
        ValidationResult

    Ejemplos:
        >>> validate_upload(b"a,b\\n1,2\\n", "datos.csv", "text/csv").is_valid
        True
        >>> validate_upload(b"MZ\\x90\\x00", "datos.csv", "text/csv").threats
        ['Executable file detected']
    """

    # --- Validacion 1: Tipo declarado + extension ---
    if not is_allowed_type(filename, declared_type):
        return ValidationResult(
            is_valid=False,
            mime_type=declared_type,
            error="Invalid file type. Only Excel and CSV files are allowed.",
        )

    # --- Validacion 2: Tamano ---
    if not is_allowed_size(len(data)):
        # Un archivo vacio cae aqui tambien; lo dejamos pasar al escaner
        # para que el cliente reciba la amenaza "Empty file".
        if len(data) > 0:
            return ValidationResult(
                is_valid=False,
                mime_type=declared_type,
                error=f"File size too large. Maximum size is {settings.MAX_FILE_SIZE // (1024 * 1024)}MB.",
            )

    # --- Validacion 3: Escaneo por firmas ---
    scan = scanner.inspect(data)
    if not scan.safe:
        return ValidationResult(
            is_valid=False,
            mime_type=declared_type,
            error="Security scan failed",
            threats=scan.threats,
        )

    # --- Validacion 4: Tipo real por magic bytes ---
    detected_type = magic.from_buffer(data, mime=True)
    if detected_type in EXECUTABLE_MIME_TYPES:
        return ValidationResult(
            is_valid=False,
            mime_type=declared_type,
            detected_type=detected_type,
            error="Security scan failed",
            threats=["Executable file detected"],
        )

    return ValidationResult(is_valid=True, mime_type=declared_type, detected_type=detected_type)
