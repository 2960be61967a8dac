from fastapi import Depends
from functools import lru_cache

from app.services.audit import AuditRecorder
from app.services.drafts import DraftPersistenceController
from app.services.gateway import get_gateway
from app.services.inspections import InspectionService


@lru_cache
def get_audit_recorder() -> AuditRecorder:
    # Una sola instancia: conserva las tareas de auditoría pendientes entre peticiones
    return AuditRecorder(get_gateway())


def get_inspection_service(gateway=Depends(get_gateway), audit: AuditRecorder = Depends(get_audit_recorder)) -> InspectionService:
    return InspectionService(gateway, audit)


def get_drafts(inspections: InspectionService = Depends(get_inspection_service)) -> DraftPersistenceController:
    return DraftPersistenceController(inspections)
