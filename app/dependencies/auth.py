from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from cachetools import TTLCache
from typing import Optional
import time

from app.config.database import USERS
from app.config.settings import TOKEN_CACHE_TTL
from app.services.audit import RequestContext, client_ip
from app.services.gateway import get_gateway

ROLES = ("technician", "manager", "admin")

# auto_error=False: la ausencia de token se resuelve como actor None
bearer_scheme = HTTPBearer(auto_error=False)

# Tokens ya verificados: token -> (actor, exp del token)
cache = TTLCache(maxsize=1000, ttl=TOKEN_CACHE_TTL)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split("Bearer ", 1)[1].strip() or None


async def resolve_actor(token: Optional[str], gateway) -> Optional[dict]:
    """Colaborador de identidad: devuelve {id, email, role} o None si la sesión no es válida."""
    if not token:
        return None
    entry = cache.get(token)
    if entry is not None:
        actor, expires_at = entry
        if expires_at is not None and time.time() >= expires_at:
            # El token caducó antes que la entrada de la caché: se vuelve a verificar
            cache.pop(token, None)
        else:
            user = await gateway.find_one(USERS, {"email": actor["email"]})
            if user and not user.get("isActive", True):
                print(f"Usuario desactivado con sesión en caché: {actor['email']}")
                cache.pop(token, None)
                return None
            return actor
    try:
        decoded_token = firebase_auth.verify_id_token(token)
    except (firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.UserDisabledError, ValueError) as e:
        print(f"Token inválido: {str(e)}")
        return None

    email = (decoded_token.get("email") or "").lower()
    if not email:
        print("Error: No se pudo obtener el email del token")
        return None
    # Los custom claims vienen en el nivel superior del token decodificado
    role = decoded_token.get("role")

    user = await gateway.find_one(USERS, {"email": email})
    if user:
        if not user.get("isActive", True):
            print(f"Usuario desactivado: {email}")
            return None
        role = role or user.get("role")
    if role not in ROLES:
        role = "technician"

    actor = {"id": decoded_token["uid"], "email": email, "role": role}
    cache[token] = (actor, decoded_token.get("exp"))
    return actor


def evict_user(uid: str) -> int:
    """Descarta las sesiones en caché de un usuario tras cambiar su rol o desactivarlo."""
    stale = [token for token, (actor, _) in list(cache.items()) if actor["id"] == uid]
    for token in stale:
        cache.pop(token, None)
    if stale:
        print(f"Caché invalidado para {len(stale)} sesiones del usuario {uid}")
    return len(stale)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    gateway=Depends(get_gateway),
) -> Optional[dict]:
    token = credentials.credentials if credentials else None
    return await resolve_actor(token, gateway)


async def get_current_user(actor: Optional[dict] = Depends(get_current_actor)) -> dict:
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


def require_roles(*roles):
    async def dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user["role"] not in roles:
            print(f"Error: {current_user['email']} no tiene permisos (rol: {current_user['role']})")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return current_user
    return dependency


get_current_admin_user = require_roles("admin")
get_current_admin_or_manager_user = require_roles("admin", "manager")


async def get_request_context(request: Request, actor: Optional[dict] = Depends(get_current_actor)) -> RequestContext:
    return RequestContext(
        actor=actor,
        ip_address=client_ip(request.headers),
        user_agent=request.headers.get("user-agent") or "unknown",
    )
