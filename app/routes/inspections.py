from fastapi import APIRouter, Body, Depends, HTTPException
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.dependencies.auth import get_current_user, get_current_admin_user, get_request_context
from app.dependencies.services import get_drafts, get_inspection_service
from app.errors import InspectionError, ValidationError
from app.models.inspection import InspectionForm, InspectionOut
from app.schemas.inspection import InspectionCreate, StepValidationOut, SubmitOut
from app.services.audit import RequestContext
from app.services.compliance import format_for_export
from app.services.drafts import DraftPersistenceController
from app.services.inspections import InspectionService
from app.services.validation import validate_all_steps, validate_step, TOTAL_STEPS

router = APIRouter()


def _out(record: Dict[str, Any]) -> InspectionOut:
    return InspectionOut.model_validate(record)


@router.post("/inspections", response_model=InspectionOut, status_code=201)
async def create_inspection(
    inspection: InspectionCreate,
    current_user: dict = Depends(get_current_user),
    context: RequestContext = Depends(get_request_context),
    service: InspectionService = Depends(get_inspection_service),
):
    try:
        payload = inspection.model_dump(by_alias=True, exclude_none=True)
        record = await service.create(context, payload)
        return _out(record)
    except (HTTPException, InspectionError):
        raise
    except Exception as e:
        print(f"Error al crear la inspección: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al crear la inspección: {str(e)}")


@router.get("/inspections", response_model=List[InspectionOut])
async def get_inspections(
    search: Optional[str] = None,
    status: Optional[str] = None,
    inspectorEmail: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    current_user: dict = Depends(get_current_user),
    service: InspectionService = Depends(get_inspection_service),
):
    try:
        records = await service.list(
            current_user,
            search=search,
            status=status,
            inspector_email=inspectorEmail,
            start_date=startDate,
            end_date=endDate,
        )
        print(f"Inspecciones devueltas: {len(records)}")
        return [_out(record) for record in records]
    except (HTTPException, InspectionError):
        raise
    except Exception as e:
        print(f"Error al obtener las inspecciones: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al obtener las inspecciones: {str(e)}")


@router.post("/inspections/validate", response_model=StepValidationOut)
async def validate_inspection(form: InspectionForm, current_user: dict = Depends(get_current_user)):
    result = validate_all_steps(form)
    return StepValidationOut(valid=result.valid, error=result.error, failingStep=result.step)


@router.post("/inspections/validate/{step}", response_model=StepValidationOut)
async def validate_inspection_step(step: int, form: InspectionForm, current_user: dict = Depends(get_current_user)):
    if step < 1 or step > TOTAL_STEPS:
        raise HTTPException(status_code=400, detail=f"step must be between 1 and {TOTAL_STEPS}")
    result = validate_step(form, step)
    return StepValidationOut(valid=result.valid, error=result.error, failingStep=None if result.valid else step)


@router.post("/inspections/submit", response_model=SubmitOut)
async def submit_inspection(
    form: InspectionForm,
    current_user: dict = Depends(get_current_user),
    context: RequestContext = Depends(get_request_context),
    service: InspectionService = Depends(get_inspection_service),
):
    """Envío final de una inspección nueva: valida todos los pasos y la guarda como completada."""
    result = validate_all_steps(form)
    if not result.valid:
        raise ValidationError(result.error, step=result.step)
    payload = form.to_document()
    payload["status"] = "completed"
    record = await service.create(context, payload)
    return SubmitOut(success=True, id=record["id"])


@router.get("/inspections/{inspection_id}", response_model=InspectionOut)
async def get_inspection(
    inspection_id: str,
    current_user: dict = Depends(get_current_user),
    service: InspectionService = Depends(get_inspection_service),
):
    record = await service.get(current_user, inspection_id)
    return _out(record)


@router.put("/inspections/{inspection_id}", response_model=InspectionOut)
async def update_inspection(
    inspection_id: str,
    payload: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    context: RequestContext = Depends(get_request_context),
    service: InspectionService = Depends(get_inspection_service),
):
    try:
        print(f"Actualizando inspección {inspection_id} con campos: {sorted(payload)}")
        record = await service.update(context, inspection_id, payload)
        return _out(record)
    except (HTTPException, InspectionError):
        raise
    except Exception as e:
        print(f"Error al actualizar la inspección: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error al actualizar la inspección: {str(e)}")


@router.put("/inspections/{inspection_id}/sections/{section_name}", response_model=InspectionOut)
async def save_inspection_section(
    inspection_id: str,
    section_name: str,
    patch: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    context: RequestContext = Depends(get_request_context),
    drafts: DraftPersistenceController = Depends(get_drafts),
):
    record = await drafts.save_section(context, inspection_id, section_name, patch)
    return _out(record)


@router.post("/inspections/{inspection_id}/complete", response_model=InspectionOut)
async def complete_inspection(
    inspection_id: str,
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    service: InspectionService = Depends(get_inspection_service),
):
    record = await service.complete(context, inspection_id)
    return _out(record)


@router.delete("/inspections/{inspection_id}")
async def delete_inspection(
    inspection_id: str,
    current_user: dict = Depends(get_current_admin_user),
    context: RequestContext = Depends(get_request_context),
    service: InspectionService = Depends(get_inspection_service),
):
    await service.delete(context, inspection_id)
    return {"success": True, "message": f"Inspection {inspection_id} deleted"}


@router.get("/export")
async def export_inspections(
    id: Optional[str] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    current_user: dict = Depends(get_current_user),
    service: InspectionService = Depends(get_inspection_service),
):
    if id:
        record = await service.get(current_user, id)
        return {"success": True, "data": format_for_export(_out(record).model_dump(by_alias=True, mode="json"))}
    records = await service.list(current_user, start_date=startDate, end_date=endDate)
    data = [format_for_export(_out(record).model_dump(by_alias=True, mode="json")) for record in records]
    return {"success": True, "data": data, "count": len(data)}
