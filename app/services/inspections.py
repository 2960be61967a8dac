import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.config.database import INSPECTIONS
from app.config.settings import DATA_RETENTION_DAYS, INSPECTION_LIST_LIMIT
from app.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.inspection import InspectionForm, InspectionStatus
from app.schemas.inspection import InspectionUpdate
from app.services.audit import AuditRecorder, RequestContext
from app.services.validation import validate_all_steps

SEARCH_FIELDS = [
    "inspectionNumber",
    "inspectorName",
    "inspectorEmail",
    "barcode",
    "vehicleInfo.vin",
    "vehicleInfo.licensePlate",
    "vehicleInfo.bookingNumber",
]


def generate_inspection_number() -> str:
    return f"INSP-{int(time.time() * 1000)}"


def is_admin(actor: Optional[Dict[str, Any]]) -> bool:
    return bool(actor) and actor.get("role") == "admin"


def owns(actor: Dict[str, Any], record: Dict[str, Any]) -> bool:
    return (record.get("inspectorEmail") or "").lower() == (actor.get("email") or "").lower()


def check_can_view(actor: Dict[str, Any], record: Dict[str, Any]) -> None:
    if not is_admin(actor) and not owns(actor, record):
        raise ForbiddenError("Forbidden: You can only view your own inspections")


def check_can_edit(actor: Dict[str, Any], record: Dict[str, Any]) -> None:
    if is_admin(actor):
        return
    if record.get("status") != InspectionStatus.DRAFT.value or not owns(actor, record):
        raise ForbiddenError("Forbidden: You can only edit your own draft inspections")


def list_filters(actor: Dict[str, Any], search: Optional[str] = None, status: Optional[str] = None,
                 inspector_email: Optional[str] = None, start_date: Optional[datetime] = None,
                 end_date: Optional[datetime] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    # Los no administradores solo ven sus propias inspecciones
    if not is_admin(actor):
        query["inspectorEmail"] = actor["email"].lower()
    elif inspector_email:
        query["inspectorEmail"] = inspector_email.lower()
    if search:
        pattern = re.escape(search)
        query["$or"] = [{field: {"$regex": pattern, "$options": "i"}} for field in SEARCH_FIELDS]
    if status:
        query["status"] = status
    if start_date and end_date:
        query["inspectionDate"] = {"$gte": start_date, "$lte": end_date}
    return query


def coerce_update(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Valida un payload de actualización y devuelve solo las claves enviadas."""
    try:
        parsed = InspectionUpdate.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid inspection data at {location}: {first['msg']}")
    changes = parsed.model_dump(by_alias=True, exclude_unset=True)
    # Un número o una retención vacíos nunca sustituyen a los guardados
    for key in ("inspectionNumber", "dataRetentionDays"):
        if changes.get(key) is None:
            changes.pop(key, None)
    return changes


class InspectionService:
    def __init__(self, gateway, audit: AuditRecorder):
        self.gateway = gateway
        self.audit = audit

    def _normalize_owner(self, actor: Dict[str, Any], record: Dict[str, Any]) -> None:
        if not is_admin(actor):
            record["inspectorEmail"] = actor["email"].lower()
        elif record.get("inspectorEmail"):
            record["inspectorEmail"] = record["inspectorEmail"].lower()

    async def create(self, context: RequestContext, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = InspectionForm.model_validate(payload).to_document()
        self._normalize_owner(context.actor, record)
        now = datetime.now(timezone.utc)
        record["inspectionNumber"] = payload.get("inspectionNumber") or generate_inspection_number()
        record["status"] = payload.get("status") or InspectionStatus.DRAFT.value
        if record.get("dataRetentionDays") is None:
            record["dataRetentionDays"] = DATA_RETENTION_DAYS
        record["createdAt"] = now
        record["updatedAt"] = now
        result = await self.gateway.insert(INSPECTIONS, record)
        record["id"] = result["id"]
        print(f"Inspección {record['inspectionNumber']} creada con ID: {record['id']} ({record['status']})")

        self.audit.record(context, "inspection.created", "inspection", record["id"], {
            "inspectionNumber": record["inspectionNumber"],
            "inspectorName": record.get("inspectorName"),
            "status": record["status"],
        })
        return record

    async def get(self, actor: Dict[str, Any], inspection_id: str) -> Dict[str, Any]:
        record = await self.gateway.get_by_id(INSPECTIONS, inspection_id)
        if not record:
            raise NotFoundError("Inspection not found")
        check_can_view(actor, record)
        return record

    async def get_for_edit(self, actor: Dict[str, Any], inspection_id: str) -> Dict[str, Any]:
        record = await self.gateway.get_by_id(INSPECTIONS, inspection_id)
        if not record:
            raise NotFoundError("Inspection not found")
        check_can_edit(actor, record)
        return record

    async def list(self, actor: Dict[str, Any], **filters) -> List[Dict[str, Any]]:
        query = list_filters(actor, **filters)
        return await self.gateway.query(INSPECTIONS, query, sort=[("createdAt", -1)], limit=INSPECTION_LIST_LIMIT)

    async def replace(self, context: RequestContext, inspection_id: str, record: Dict[str, Any],
                      details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Escribe el registro completo ya fusionado."""
        record = dict(record)
        self._normalize_owner(context.actor, record)
        # Los guardados parciales siempre quedan como borrador salvo que se pida completar
        if record.get("status") != InspectionStatus.COMPLETED.value:
            record["status"] = InspectionStatus.DRAFT.value
        record["updatedAt"] = datetime.now(timezone.utc)
        updated = await self.gateway.update(INSPECTIONS, inspection_id, record)
        print(f"Inspección {inspection_id} actualizada ({updated.get('status')})")

        audit_details = {
            "inspectionNumber": updated.get("inspectionNumber"),
            "status": updated.get("status"),
        }
        audit_details.update(details or {})
        self.audit.record(context, "inspection.updated", "inspection", inspection_id, audit_details)
        return updated

    async def update(self, context: RequestContext, inspection_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        # Permisos antes que la validación de campos: un no propietario recibe 403 con cualquier payload
        current = await self.get_for_edit(context.actor, inspection_id)
        changes = coerce_update(payload)
        merged = {**current, **changes}
        return await self.replace(context, inspection_id, merged)

    async def complete(self, context: RequestContext, inspection_id: str) -> Dict[str, Any]:
        """Marca como completada una inspección existente (acción de administrador)."""
        if not is_admin(context.actor):
            raise ForbiddenError("Forbidden: Only administrators can complete inspections")
        current = await self.gateway.get_by_id(INSPECTIONS, inspection_id)
        if not current:
            raise NotFoundError("Inspection not found")
        result = validate_all_steps(InspectionForm.model_validate(current))
        if not result.valid:
            raise ValidationError(result.error, step=result.step)
        current["status"] = InspectionStatus.COMPLETED.value
        current["updatedAt"] = datetime.now(timezone.utc)
        updated = await self.gateway.update(INSPECTIONS, inspection_id, current)
        print(f"Inspección {inspection_id} marcada como completada")
        self.audit.record(context, "inspection.completed", "inspection", inspection_id, {
            "inspectionNumber": updated.get("inspectionNumber"),
            "status": updated.get("status"),
        })
        return updated

    async def delete(self, context: RequestContext, inspection_id: str) -> None:
        if not is_admin(context.actor):
            raise ForbiddenError("Forbidden: Only administrators can delete inspections")
        record = await self.gateway.get_by_id(INSPECTIONS, inspection_id)
        if not record:
            raise NotFoundError("Inspection not found")
        # Se audita antes de borrar para conservar los datos identificativos
        self.audit.record(context, "inspection.deleted", "inspection", inspection_id, {
            "inspectionNumber": record.get("inspectionNumber"),
            "inspectorName": record.get("inspectorName"),
        })
        await self.gateway.delete_many(INSPECTIONS, [inspection_id])
        print(f"Inspección {inspection_id} eliminada")
