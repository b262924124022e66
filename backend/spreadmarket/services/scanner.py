"""
Modulo de escaneo de seguridad de archivos subidos.

Es una heuristica basica por firmas de bytes, NO un antivirus:
1. Busca "magic numbers" de ejecutables en los primeros 20 bytes:
       4D 5A        -> ejecutable PE de Windows ("MZ")
       7F 45 4C 46  -> ejecutable ELF de Linux
       CA FE BA BE  -> clase compilada de Java
2. Si el archivo es un contenedor ZIP (50 4B 03 04, como los .xlsx) y
   contiene el texto "macros" en cualquier parte, lo marca como contenido
   con macros.
3. Marca los archivos vacios.

Limitaciones conocidas: no detecta amenazas cuya firma no este al inicio
del archivo, y da falsos positivos si la palabra "macros" aparece en una
celda legitima.

Patron de diseno: Strategy
--------------------------
El resto de la app solo depende del protocolo SecurityScanner (un metodo
`inspect(data) -> ScanResult`). Si mas adelante se integra un escaner real
(ClamAV, un servicio externo), basta con otra clase que cumpla el protocolo.
"""

from dataclasses import dataclass, field
from typing import Protocol

# Firmas de ejecutables en hexadecimal (minusculas)
EXECUTABLE_SIGNATURES = (
    "4d5a",      # PE
    "7f454c46",  # ELF
    "cafebabe",  # Java class
)

# Encabezado de un archivo ZIP local ("PK\x03\x04")
ZIP_SIGNATURE = "504b0304"

HEADER_LENGTH = 20

THREAT_EXECUTABLE = "Executable file detected"
THREAT_MACROS = "Macro content detected"
THREAT_EMPTY = "Empty file"


@dataclass
class ScanResult:
    safe: bool
    threats: list[str] = field(default_factory=list)


class SecurityScanner(Protocol):
    def inspect(self, data: bytes) -> ScanResult:
        ...


class SignatureScanner:
    """Escaner por firmas de bytes (ver docstring del modulo)."""

    def inspect(self, data: bytes) -> ScanResult:
        threats: list[str] = []

        # bytes.hex() ya devuelve minusculas: b"MZ" -> "4d5a"
        header = data[:HEADER_LENGTH].hex()

        # Una sola entrada aunque coincidan varias firmas
        if any(signature in header for signature in EXECUTABLE_SIGNATURES):
            threats.append(THREAT_EXECUTABLE)

        if ZIP_SIGNATURE in header and b"macros" in data:
            threats.append(THREAT_MACROS)

        if len(data) == 0:
            threats.append(THREAT_EMPTY)

        return ScanResult(safe=not threats, threats=threats)


default_scanner: SecurityScanner = SignatureScanner()


def scan(data: bytes) -> ScanResult:
    return default_scanner.inspect(data)
