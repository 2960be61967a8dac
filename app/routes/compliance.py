from fastapi import APIRouter, Depends, HTTPException

from app.dependencies.auth import get_current_admin_user, get_request_context
from app.dependencies.services import get_audit_recorder
from app.errors import InspectionError
from app.services.audit import AuditRecorder, RequestContext
from app.services.compliance import sweep
from app.services.gateway import get_gateway

router = APIRouter()

@router.post("/compliance/retention")
async def run_retention_sweep(
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    gateway=Depends(get_gateway),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    try:
        deleted = await sweep(gateway)
    except InspectionError:
        raise
    except Exception as e:
        print(f"Error en la limpieza por retención: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error en la limpieza por retención: {str(e)}")
    audit.record(context, "compliance.retention_sweep", "system", None, {"deletedCount": deleted})
    return {
        "success": True,
        "deletedCount": deleted,
        "message": f"Deleted {deleted} inspections based on retention policy",
    }
