from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from firebase_admin import auth as firebase_auth
from datetime import datetime, timezone
from typing import List, Optional

from app.config.database import AUDIT_LOGS, INSPECTIONS, USERS
from app.dependencies.auth import evict_user, get_current_admin_user, get_current_admin_or_manager_user, get_request_context
from app.dependencies.services import get_audit_recorder
from app.errors import InspectionError
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate, UserOut
from app.services.audit import AuditRecorder, RequestContext, audit_filters, audit_logs_to_csv, list_audit_logs
from app.services.gateway import get_gateway

router = APIRouter()


@router.get("/users", response_model=List[UserOut])
async def get_all_users(current_user: dict = Depends(get_current_admin_or_manager_user), gateway=Depends(get_gateway)):
    try:
        users = await gateway.query(USERS, {}, sort=[("createdAt", -1)])
        print(f"Usuarios devueltos: {len(users)}")
        return users
    except InspectionError:
        raise
    except Exception as e:
        print(f"Error al obtener los usuarios: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al obtener los usuarios: {str(e)}")


@router.get("/users/check-email")
async def check_email(email: str, current_user: dict = Depends(get_current_admin_user), gateway=Depends(get_gateway)):
    existing = await gateway.find_one(USERS, {"email": email.lower()})
    return {"available": existing is None}


@router.get("/users/check-phone")
async def check_phone(phone: str, current_user: dict = Depends(get_current_admin_user), gateway=Depends(get_gateway)):
    existing = await gateway.find_one(USERS, {"phone": phone.strip()})
    return {"available": existing is None}


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(user_id: str, current_user: dict = Depends(get_current_admin_or_manager_user), gateway=Depends(get_gateway)):
    user = await gateway.get_by_id(USERS, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/users", response_model=UserOut)
async def create_user(
    user: UserCreate,
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    gateway=Depends(get_gateway),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    email = user.email.lower()
    print(f"Intentando crear usuario: {email}, role: {user.role}")
    if await gateway.find_one(USERS, {"email": email}):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    if user.phone and await gateway.find_one(USERS, {"phone": user.phone.strip()}):
        raise HTTPException(status_code=400, detail="User with this phone number already exists")

    print("Creando usuario en Firebase...")
    try:
        firebase_user = firebase_auth.create_user(
            email=email,
            password=user.password,
            display_name=user.name,
            disabled=not user.isActive,
        )
        firebase_auth.set_custom_user_claims(firebase_user.uid, {"role": user.role.value})
        print(f"Usuario creado en Firebase con UID: {firebase_user.uid}, role={user.role.value}")
    except Exception as e:
        print(f"Error al crear usuario en Firebase: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al crear el usuario en Firebase: {str(e)}")

    # Sin phone cuando no se informa: el índice único de phone es sparse
    user_dict = User(
        uid=firebase_user.uid,
        email=email,
        name=user.name,
        phone=user.phone.strip() if user.phone else None,
        role=user.role,
        isActive=user.isActive,
        createdAt=datetime.now(timezone.utc),
    ).model_dump(exclude_none=True)
    try:
        result = await gateway.insert(USERS, user_dict)
    except InspectionError:
        # Deshacer la creación en Firebase si no se pudo guardar en MongoDB
        firebase_auth.delete_user(firebase_user.uid)
        print(f"Usuario eliminado de Firebase: {firebase_user.uid}")
        raise
    user_dict["id"] = result["id"]
    print(f"Usuario {email} guardado en MongoDB con ID: {user_dict['id']}")

    audit.record(context, "user.created", "user", user_dict["id"], {
        "email": email,
        "name": user.name,
        "role": user.role.value,
    })
    return user_dict


@router.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    update_data: UserUpdate,
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    gateway=Depends(get_gateway),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    user = await gateway.get_by_id(USERS, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        other = await gateway.find_one(USERS, {"email": changes["email"]})
        if other and other["id"] != user_id:
            raise HTTPException(status_code=400, detail="User with this email already exists")
    if "phone" in changes:
        changes["phone"] = changes["phone"].strip()
        other = await gateway.find_one(USERS, {"phone": changes["phone"]})
        if other and other["id"] != user_id:
            raise HTTPException(status_code=400, detail="User with this phone number already exists")
    if "role" in changes:
        changes["role"] = changes["role"].value

    password = changes.pop("password", None)
    firebase_changes = {}
    if "email" in changes:
        firebase_changes["email"] = changes["email"]
    if "name" in changes:
        firebase_changes["display_name"] = changes["name"]
    if "isActive" in changes:
        firebase_changes["disabled"] = not changes["isActive"]
    if password:
        firebase_changes["password"] = password
    try:
        if firebase_changes and user.get("uid"):
            firebase_auth.update_user(user["uid"], **firebase_changes)
        if "role" in changes and user.get("uid"):
            firebase_auth.set_custom_user_claims(user["uid"], {"role": changes["role"]})
    except Exception as e:
        print(f"Error al actualizar el usuario en Firebase: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al actualizar el usuario en Firebase: {str(e)}")

    updated = await gateway.update(USERS, user_id, {**user, **changes})
    print(f"Usuario {user_id} actualizado: {sorted(changes)}")
    # Las sesiones en caché deben ver el rol y el estado nuevos
    if user.get("uid"):
        evict_user(user["uid"])

    changed_fields = sorted(changes) + (["password"] if password else [])
    audit.record(context, "user.updated", "user", user_id, {
        "email": updated.get("email"),
        "changes": changed_fields,
    })
    return updated


@router.delete("/users/{user_id}")
async def deactivate_user(
    user_id: str,
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    gateway=Depends(get_gateway),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    user = await gateway.get_by_id(USERS, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.get("uid") == current_user["id"]:
        raise HTTPException(status_code=403, detail="You cannot deactivate your own account")

    # Borrado lógico: se desactiva la cuenta, el registro se conserva
    if user.get("uid"):
        try:
            firebase_auth.update_user(user["uid"], disabled=True)
        except Exception as e:
            print(f"Error al desactivar el usuario en Firebase: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error al desactivar el usuario en Firebase: {str(e)}")
    await gateway.update(USERS, user_id, {**user, "isActive": False})
    if user.get("uid"):
        evict_user(user["uid"])
    print(f"Usuario {user.get('email')} desactivado")

    audit.record(context, "user.deactivated", "user", user_id, {
        "email": user.get("email"),
        "name": user.get("name"),
    })
    return {"success": True, "message": "User deactivated successfully"}


@router.get("/stats")
async def get_stats(current_user: dict = Depends(get_current_admin_or_manager_user), gateway=Depends(get_gateway)):
    total = await gateway.count(INSPECTIONS)
    completed = await gateway.count(INSPECTIONS, {"status": "completed"})
    draft = await gateway.count(INSPECTIONS, {"status": "draft"})
    total_users = await gateway.count(USERS)
    active_users = await gateway.count(USERS, {"isActive": True})
    recent = await gateway.query(INSPECTIONS, {}, sort=[("createdAt", -1)], limit=10)
    return {
        "success": True,
        "data": {
            "inspections": {
                "total": total,
                "completed": completed,
                "draft": draft,
                "byStatus": {"completed": completed, "draft": draft},
            },
            "users": {
                "total": total_users,
                "active": active_users,
                "inactive": total_users - active_users,
            },
            "recent": [
                {
                    "id": r["id"],
                    "inspectionNumber": r.get("inspectionNumber"),
                    "inspectorName": r.get("inspectorName"),
                    "status": r.get("status"),
                    "createdAt": r.get("createdAt"),
                }
                for r in recent
            ],
        },
    }


@router.get("/audit")
async def get_audit_logs(
    page: int = 1,
    limit: int = 50,
    action: Optional[str] = None,
    resourceType: Optional[str] = None,
    userId: Optional[str] = None,
    resourceId: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    current_user: dict = Depends(get_current_admin_or_manager_user),
    gateway=Depends(get_gateway),
):
    filters = audit_filters(action, resourceType, userId, resourceId, startDate, endDate)
    return await list_audit_logs(gateway, filters, page=page, limit=limit)


@router.get("/audit/export")
async def export_audit_logs(
    format: str = "csv",
    action: Optional[str] = None,
    resourceType: Optional[str] = None,
    userId: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    current_user: dict = Depends(get_current_admin_user),
    gateway=Depends(get_gateway),
):
    filters = audit_filters(action, resourceType, userId, None, startDate, endDate)
    logs = await gateway.query(AUDIT_LOGS, filters, sort=[("timestamp", -1)])
    if format == "csv":
        filename = f"audit-logs-{int(datetime.now(timezone.utc).timestamp() * 1000)}.csv"
        return Response(
            content=audit_logs_to_csv(logs),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    return {"success": True, "data": logs, "count": len(logs)}
