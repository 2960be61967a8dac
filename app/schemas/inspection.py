from pydantic import BaseModel
from typing import Optional

from app.models.inspection import InspectionForm, InspectionStatus

class InspectionCreate(InspectionForm):
    inspection_number: Optional[str] = None
    status: InspectionStatus = InspectionStatus.DRAFT

class InspectionUpdate(InspectionForm):
    inspection_number: Optional[str] = None
    status: Optional[InspectionStatus] = None  # Solo "completed" cambia el estado; lo demás queda en borrador

class StepValidationOut(BaseModel):
    valid: bool
    error: Optional[str] = None
    failingStep: Optional[int] = None

class SubmitOut(BaseModel):
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
    failingStep: Optional[int] = None
