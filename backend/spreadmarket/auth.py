"""
Modulo de autenticacion por token de sesion.

El inicio de sesion lo maneja el proveedor de identidad; este backend solo
recibe el token en el header:

    Authorization: Bearer <jwt>

El token es un JWT HS256 firmado con settings.SESSION_SECRET cuyo claim
`sub` es el id del usuario. Dependencias disponibles:

    get_current_user   -> 401 si falta el token, es invalido, expiro o el
                          usuario no existe.
    require_creator    -> ademas, 403 si el usuario no es creador.

Uso:
    @router.get("/api/dashboard")
    def dashboard(user: User = Depends(get_current_user)):
        ...
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from spreadmarket.config import settings
from spreadmarket.database import get_db
from spreadmarket.exceptions import ForbiddenError, UnauthorizedError
from spreadmarket.models.entities import User

logger = logging.getLogger(__name__)

# auto_error=False: sin header no queremos el 403 de FastAPI sino nuestro 401
bearer_scheme = HTTPBearer(auto_error=False)


def create_session_token(user_id: str, expires_in: timedelta | None = None) -> str:
    """Firma un token de sesion para `user_id`."""
    expires_at = datetime.now(timezone.utc) + (expires_in or timedelta(hours=settings.SESSION_TTL_HOURS))
    payload = {"sub": user_id, "exp": expires_at}
    return jwt.encode(payload, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str) -> str:
    """Retorna el id de usuario del token o lanza UnauthorizedError."""
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthorizedError("Session expired")
    except JWTError as e:
        logger.warning(f"Session token rejected: {e}")
        raise UnauthorizedError()

    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError()
    return user_id


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise UnauthorizedError()

    user = db.get(User, decode_session_token(credentials.credentials))
    if user is None:
        raise UnauthorizedError()
    return user


def require_creator(user: User = Depends(get_current_user)) -> User:
    if not user.is_creator:
        raise ForbiddenError("Only creators can create listings")
    return user
