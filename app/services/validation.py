"""Reglas de validación de cada paso del formulario de inspección.

Funciones puras: reciben el estado completo del formulario y un número de paso
(1-6) y devuelven un StepValidation. No tienen efectos secundarios.
"""
import re
from dataclasses import dataclass
from typing import Optional

from app.models.inspection import InspectionForm, CHECKLIST_STATUSES

TOTAL_STEPS = 6

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class StepValidation:
    valid: bool
    error: Optional[str] = None
    step: Optional[int] = None


VALID = StepValidation(valid=True)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _invalid(message: str) -> StepValidation:
    return StepValidation(valid=False, error=message)


def validate_inspector_info(form: InspectionForm) -> StepValidation:
    if _blank(form.inspector_name):
        return _invalid("Inspector name is required")
    if _blank(form.inspector_email):
        return _invalid("Inspector email is required")
    if not EMAIL_PATTERN.match(form.inspector_email.strip()):
        return _invalid("Please enter a valid email address")
    if form.inspection_date is None:
        return _invalid("Inspection date is required")
    return VALID


def validate_vehicle(form: InspectionForm) -> StepValidation:
    info = form.vehicle_info
    if _blank(info.vin) and _blank(info.license_plate) and _blank(info.booking_number):
        return _invalid("Please provide at least VIN, License Plate, or Booking Number")
    return VALID


def validate_gps_and_photos(form: InspectionForm) -> StepValidation:
    if not form.location.has_fix():
        return _invalid("Please capture GPS location before proceeding")
    if not form.photos:
        return _invalid("Please upload at least one photo")
    return VALID


def validate_checklist(form: InspectionForm) -> StepValidation:
    if not form.checklist:
        return _invalid("Please add at least one checklist category")
    for index, category in enumerate(form.checklist, start=1):
        if _blank(category.category):
            return _invalid(f"Category {index} name is required")
        if not category.items:
            return _invalid(f'Category "{category.category}" must have at least one item')
        for item in category.items:
            if _blank(item.item):
                return _invalid(f'Item name is required in category "{category.category}"')
            if _blank(item.status):
                return _invalid(f'Item status is required for "{item.item}" in category "{category.category}"')
            if item.status not in CHECKLIST_STATUSES:
                return _invalid(f'Invalid status "{item.status}" for "{item.item}" in category "{category.category}"')
    return VALID


def validate_signatures(form: InspectionForm) -> StepValidation:
    if not form.privacy_consent:
        return _invalid("Privacy consent is required to proceed")
    if _blank(form.signatures.technician) and _blank(form.signatures.manager):
        return _invalid("At least one signature (Technician or Manager) is required")
    return VALID


STEP_VALIDATORS = {
    1: validate_inspector_info,
    2: validate_vehicle,
    3: validate_gps_and_photos,
    4: validate_checklist,
    5: lambda form: VALID,  # El aviso legal es solo informativo
    6: validate_signatures,
}


def validate_step(form: InspectionForm, step: int) -> StepValidation:
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return VALID
    return validator(form)


def validate_all_steps(form: InspectionForm) -> StepValidation:
    """Valida los pasos en orden y se detiene en el primero que falla."""
    for step in range(1, TOTAL_STEPS + 1):
        result = validate_step(form, step)
        if not result.valid:
            return StepValidation(valid=False, error=result.error, step=step)
    return VALID
