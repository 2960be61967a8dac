from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime

ANONYMOUS_USER_ID = "anonymous"
ANONYMOUS_USER_EMAIL = "anonymous@system"
ANONYMOUS_USER_NAME = "Anonymous User"

class AuditLogEntry(BaseModel):
    # Entrada inmutable: la aplicación nunca la actualiza ni la elimina
    userId: str
    userEmail: str
    userName: str
    action: str  # "recurso.verbo", p. ej. "inspection.created"
    resourceType: str
    resourceId: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ipAddress: str = "unknown"
    userAgent: str = "unknown"
    timestamp: datetime
