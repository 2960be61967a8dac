"""Guardado por secciones de una inspección en curso.

``save_section`` lee el registro actual, sobrescribe las claves de primer
nivel de la sección (fusión superficial: los objetos anidados se reemplazan
enteros) y escribe el registro completo. El ciclo leer-fusionar-escribir no es
atómico: dos guardados concurrentes sobre la misma inspección pueden pisarse
y gana el último en escribir. Cada escritor conserva siempre su propia
sección.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.errors import PreconditionError, ValidationError
from app.models.inspection import InspectionForm
from app.services.audit import RequestContext

SECTION_KEYS = {
    "inspectorInfo": ("inspectorName", "inspectorEmail", "inspectionDate"),
    "vehicleInfo": ("vehicleInfo",),
    "location": ("location",),
    "barcode": ("barcode", "barcodeType"),
    "photos": ("photos",),
    "checklist": ("checklist",),
    "signatures": ("signatures",),
}


def section_patch(form: InspectionForm, section_name: str) -> Dict[str, Any]:
    """Extrae del formulario las claves que pertenecen a una sección."""
    keys = _section_keys(section_name)
    document = form.to_document()
    return {key: document.get(key) for key in keys}


def _section_keys(section_name: str):
    keys = SECTION_KEYS.get(section_name)
    if keys is None:
        raise ValidationError(f"Unknown section: {section_name}")
    return keys


def _coerce_patch(section_name: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    keys = _section_keys(section_name)
    unexpected = [key for key in patch if key not in keys]
    if unexpected:
        raise ValidationError(f"Fields {', '.join(sorted(unexpected))} do not belong to section {section_name}")
    try:
        parsed = InspectionForm.model_validate(patch)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid {section_name} data at {location}: {first['msg']}")
    document = parsed.to_document()
    return {key: document[key] for key in patch}


class DraftPersistenceController:
    def __init__(self, inspections):
        self.inspections = inspections

    async def save_section(self, context: RequestContext, inspection_id: Optional[str],
                           section_name: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        if not inspection_id:
            raise PreconditionError("Cannot save section: Inspection ID is required")
        _section_keys(section_name)

        # Lectura fresca del registro; NotFoundError / ForbiddenError antes de validar campos
        current = await self.inspections.get_for_edit(context.actor, inspection_id)
        section_data = _coerce_patch(section_name, patch)
        merged = {**current, **section_data}
        print(f"Guardando sección {section_name} de la inspección {inspection_id}")
        return await self.inspections.replace(context, inspection_id, merged, {"section": section_name})
