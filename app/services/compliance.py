"""Retención de datos y utilidades de privacidad."""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from app.config.database import INSPECTIONS
from app.config.settings import DATA_RETENTION_DAYS
from app.models.inspection import InspectionStatus


def _as_utc(value: datetime) -> datetime:
    # MongoDB devuelve fechas naive en UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def expiration_date(inspection_date: datetime, retention_days: Optional[int]) -> datetime:
    days = DATA_RETENTION_DAYS if retention_days is None else retention_days
    return _as_utc(inspection_date) + timedelta(days=days)


def should_delete_data(inspection_date: datetime, retention_days: Optional[int],
                       now: Optional[datetime] = None) -> bool:
    now = _as_utc(now or datetime.now(timezone.utc))
    return now > expiration_date(inspection_date, retention_days)


async def sweep(gateway, now: Optional[datetime] = None) -> int:
    """Elimina las inspecciones completadas cuya ventana de retención ya pasó.

    Los borradores nunca se tocan. Devuelve el número de inspecciones eliminadas.
    """
    now = now or datetime.now(timezone.utc)
    completed = await gateway.query(INSPECTIONS, {"status": InspectionStatus.COMPLETED.value})
    to_delete = [
        inspection["id"]
        for inspection in completed
        if inspection.get("inspectionDate")
        and should_delete_data(inspection["inspectionDate"], inspection.get("dataRetentionDays"), now)
    ]
    if not to_delete:
        return 0
    deleted = await gateway.delete_many(INSPECTIONS, to_delete)
    print(f"Retención: {deleted} inspecciones eliminadas")
    return deleted


def format_privacy_consent(consent: bool, timestamp: datetime) -> str:
    return f"Privacy consent: {'Granted' if consent else 'Not Granted'} on {timestamp.isoformat()}"


def format_for_export(data: Dict[str, Any]) -> Dict[str, Any]:
    exported_at = datetime.now(timezone.utc)
    exported = {
        **data,
        "exportedAt": exported_at.isoformat(),
        "format": "GDPR-compliant export",
    }
    if "privacyConsent" in data:
        exported["privacyConsentStatement"] = format_privacy_consent(bool(data["privacyConsent"]), exported_at)
    return exported
