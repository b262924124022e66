"""
Modulo de limitacion de tasa de peticiones (Rate Limiting).

Aqui viven dos limitadores que comparten el mismo backend de contadores:

1. `limiter` (SlowAPI): limite por IP aplicado con decoradores en los
   endpoints de escritura, por ejemplo:

       @router.post("/api/uploads/presigned-url")
       @limiter.limit("20/minute")
       async def ...(request: Request, ...):

   Si se excede, SlowAPI lanza RateLimitExceeded y main.py responde 429.

2. `RateLimiter` (limits): servicio inyectable para limites por
   identificador arbitrario (ej: "upload_validate_{user_id}"), cuando el
   endpoint necesita conocer el resultado para armar su propia respuesta
   (cuantas peticiones quedan y cuando se reinicia la ventana).

Como funciona la "ventana fija" (fixed window)?
-----------------------------------------------
La primera peticion de un identificador abre una ventana que termina en
`ahora + window_ms`. Mientras la ventana este abierta, se admiten hasta
`max_requests` peticiones; las siguientes se rechazan. Cuando la ventana
vence, el contador vuelve a cero. Permite rafagas en el borde entre dos
ventanas (a diferencia de una ventana deslizante).

Backend de contadores
---------------------
SlowAPI esta construido sobre la libreria `limits`, y usamos la misma
libreria directamente para RateLimiter. El backend se elige con
settings.RATE_LIMIT_STORAGE_URI:
    - "memory://": contadores en el proceso. MemoryStorage protege cada
      llave con un lock y purga las llaves vencidas con su propio timer,
      independiente del trafico.
    - "redis://host:6379": contadores compartidos entre procesos/servidores.
"""

import math
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.util import get_remote_address

from spreadmarket.config import settings

# Limitador por IP para los decoradores de los endpoints.
limiter = Limiter(key_func=get_remote_address, storage_uri=settings.RATE_LIMIT_STORAGE_URI)


@dataclass
class RateLimitResult:
    """
    Resultado de una verificacion de rate limit.

    Atributos:
        allowed (bool): True si la peticion se admite.
        remaining_requests (int): Peticiones que quedan en la ventana actual.
        reset_time (int): Momento (epoch en milisegundos) en que la ventana
            se reinicia.
    """
    allowed: bool
    remaining_requests: int
    reset_time: int


class RateLimiter:
    """
    Limitador de ventana fija por identificador.

    Parametros:
        storage_uri (str | None): URI del backend de `limits`. Por defecto
            usa settings.RATE_LIMIT_STORAGE_URI.
    """

    def __init__(self, storage_uri: str | None = None):
        self.storage = storage_from_string(storage_uri or settings.RATE_LIMIT_STORAGE_URI)
        self.strategy = FixedWindowRateLimiter(self.storage)

    def check(self, identifier: str, max_requests: int = 10, window_ms: int = 60_000) -> RateLimitResult:
        # `limits` trabaja con ventanas en segundos enteros.
        window_seconds = max(1, math.ceil(window_ms / 1000))
        item = RateLimitItemPerSecond(max_requests, window_seconds)

        allowed = self.strategy.hit(item, identifier)
        stats = self.strategy.get_window_stats(item, identifier)
        return RateLimitResult(
            allowed=allowed,
            remaining_requests=max(0, stats.remaining),
            reset_time=int(stats.reset_time * 1000),
        )

    def reset(self) -> None:
        """Borra todos los contadores (util en tests)."""
        self.storage.reset()


rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """Dependencia de FastAPI; en tests se sobreescribe con otra instancia."""
    return rate_limiter
