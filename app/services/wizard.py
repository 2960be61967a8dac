"""Máquina de estados del formulario de inspección en 6 pasos.

El asistente guarda el estado del formulario en memoria hasta que se guarda de
forma explícita (por secciones o al enviar). Antes de avanzar o enviar vuelve a
comprobar la sesión con el colaborador de identidad; si la sesión no es válida
la transición se cancela sin efectos.
"""
import time
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config.settings import SAVED_INDICATOR_SECONDS
from app.errors import AuthenticationError, InspectionError
from app.models.inspection import InspectionForm, InspectionStatus, default_checklist
from app.services import geo
from app.services.audit import RequestContext
from app.services.drafts import SECTION_KEYS, section_patch
from app.services.validation import TOTAL_STEPS, validate_all_steps, validate_step

SUBMITTED = "submitted"
LOGIN_REQUIRED = "Please log in to continue"


@dataclass
class StepResult:
    advanced: bool
    error: Optional[str] = None
    authentication_required: bool = False


@dataclass
class SubmitResult:
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
    failing_step: Optional[int] = None
    authentication_required: bool = False


class InspectionWizard:
    def __init__(self, form: InspectionForm, identity: Callable[[], Awaitable[Optional[Dict[str, Any]]]],
                 inspections, drafts, inspection_id: Optional[str] = None,
                 ip_address: str = "unknown", user_agent: str = "unknown",
                 clock: Callable[[], float] = time.monotonic):
        self.form = form
        self.identity = identity
        self.inspections = inspections
        self.drafts = drafts
        self.inspection_id = inspection_id
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.clock = clock
        self.current_step = 1
        self.state = "editing"
        self._saved_until: Dict[str, float] = {}

    @classmethod
    def start(cls, identity, inspections, drafts, inspector_name: str = "", inspector_email: str = "", **kwargs):
        """Formulario nuevo con la fecha de hoy y la lista de comprobación por defecto."""
        form = InspectionForm(
            inspector_name=inspector_name,
            inspector_email=inspector_email,
            inspection_date=datetime.now(timezone.utc),
            checklist=default_checklist(),
        )
        return cls(form, identity, inspections, drafts, **kwargs)

    @property
    def submitted(self) -> bool:
        return self.state == SUBMITTED

    async def _context(self) -> Optional[RequestContext]:
        actor = await self.identity()
        if not actor:
            return None
        return RequestContext(actor=actor, ip_address=self.ip_address, user_agent=self.user_agent)

    async def go_next(self) -> StepResult:
        if self.submitted:
            return StepResult(advanced=False, error="Inspection already submitted")
        if await self._context() is None:
            return StepResult(advanced=False, error=LOGIN_REQUIRED, authentication_required=True)
        result = validate_step(self.form, self.current_step)
        if not result.valid:
            return StepResult(advanced=False, error=result.error)
        self.current_step = min(self.current_step + 1, TOTAL_STEPS)
        return StepResult(advanced=True)

    def go_previous(self) -> None:
        if not self.submitted:
            self.current_step = max(self.current_step - 1, 1)

    def go_to_step(self, step: int) -> bool:
        # Solo se puede saltar hacia atrás sin validar; hacia delante hay que usar go_next
        if self.submitted or step < 1 or step > self.current_step:
            return False
        self.current_step = step
        return True

    async def save_section(self, section_name: str) -> Dict[str, Any]:
        """Guarda una sección; lanza InspectionError con un mensaje legible si falla."""
        context = await self._context()
        if context is None:
            raise AuthenticationError(LOGIN_REQUIRED)
        self._saved_until.pop(section_name, None)
        record = await self.drafts.save_section(
            context, self.inspection_id, section_name, section_patch(self.form, section_name)
        )
        self._saved_until[section_name] = self.clock() + SAVED_INDICATOR_SECONDS
        return record

    def is_section_saved(self, section_name: str) -> bool:
        until = self._saved_until.get(section_name)
        return until is not None and self.clock() < until

    def saved_sections(self):
        return [name for name in SECTION_KEYS if self.is_section_saved(name)]

    async def submit(self) -> SubmitResult:
        if self.submitted:
            return SubmitResult(success=False, id=self.inspection_id, error="Inspection already submitted")
        context = await self._context()
        if context is None:
            return SubmitResult(success=False, error=LOGIN_REQUIRED, authentication_required=True)

        result = validate_all_steps(self.form)
        if not result.valid:
            # Se lleva al usuario al paso que falla
            self.current_step = result.step
            return SubmitResult(success=False, error=result.error, failing_step=result.step)

        payload = self.form.to_document()
        try:
            if self.inspection_id is None:
                payload["status"] = InspectionStatus.COMPLETED.value
                record = await self.inspections.create(context, payload)
                self.inspection_id = record["id"]
                self.state = SUBMITTED
            else:
                # Una inspección existente se guarda entera como borrador;
                # completarla es una acción aparte del administrador
                payload["status"] = InspectionStatus.DRAFT.value
                record = await self.inspections.update(context, self.inspection_id, payload)
        except InspectionError as e:
            print(f"Error al enviar la inspección: {e.message}")
            return SubmitResult(success=False, error=e.message)
        return SubmitResult(success=True, id=record["id"])

    # Prueba de ruta: los puntos se acumulan en memoria y al parar se guarda la sección location

    def start_road_test(self, latitude: float, longitude: float, address: Optional[str] = None, at=None) -> None:
        self.form.location = geo.start_road_test(self.form.location, latitude, longitude, address, at)

    def add_route_point(self, latitude: float, longitude: float, at=None) -> None:
        self.form.location = geo.add_route_point(self.form.location, latitude, longitude, at)

    async def stop_road_test(self, latitude: float, longitude: float, address: Optional[str] = None, at=None):
        self.form.location = geo.stop_road_test(self.form.location, latitude, longitude, address, at)
        if self.inspection_id is not None:
            await self.save_section("location")
        return self.form.location.road_test
