from fastapi import APIRouter, Depends, Header
from typing import Optional

from app.config.database import USERS
from app.dependencies.auth import bearer_token, cache, get_current_user
from app.services.gateway import get_gateway

router = APIRouter()

@router.get("/me")
async def get_me(current_user: dict = Depends(get_current_user), gateway=Depends(get_gateway)):
    user = await gateway.find_one(USERS, {"email": current_user["email"]})
    print(f"Devolviendo datos del usuario: {current_user['email']}")
    return {
        "id": current_user["id"],
        "email": current_user["email"],
        "role": current_user["role"],
        "name": (user or {}).get("name") or current_user["email"],
    }

@router.post("/logout")
async def logout(authorization: Optional[str] = Header(None)):
    token = bearer_token(authorization)
    if token and token in cache:
        del cache[token]
        print("Caché invalidado para el token de la sesión")
    return {"message": "Session closed"}
