"""Errores de dominio de las inspecciones y su código HTTP."""
from typing import Optional


class InspectionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InspectionError):
    """Una regla de validación de un paso (o del formulario completo) falló."""
    status_code = 400

    def __init__(self, message: str, step: Optional[int] = None):
        super().__init__(message)
        self.step = step


class AuthenticationError(InspectionError):
    status_code = 401

    def __init__(self, message: str = "Please log in to continue"):
        super().__init__(message)


class ForbiddenError(InspectionError):
    status_code = 403


class NotFoundError(InspectionError):
    status_code = 404


class PreconditionError(InspectionError):
    status_code = 409


class StoreError(InspectionError):
    """El almacén rechazó una lectura o escritura; el mensaje es el literal del driver."""
    status_code = 500


def error_body(exc: InspectionError) -> dict:
    body = {"success": False, "detail": exc.message}
    if isinstance(exc, ValidationError) and exc.step is not None:
        body["failingStep"] = exc.step
    return body
