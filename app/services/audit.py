"""Registro de auditoría de acciones privilegiadas.

La auditoría es de mejor esfuerzo: ``record`` programa la escritura en
segundo plano y nunca propaga errores a la operación que la originó.
"""
import asyncio
import csv
import io
import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.config.database import AUDIT_LOGS, USERS
from app.models.audit import AuditLogEntry, ANONYMOUS_USER_ID, ANONYMOUS_USER_EMAIL, ANONYMOUS_USER_NAME


@dataclass
class RequestContext:
    actor: Optional[Dict[str, Any]] = None  # {"id", "email", "role"} o None
    ip_address: str = "unknown"
    user_agent: str = "unknown"

    @property
    def is_admin(self) -> bool:
        return bool(self.actor) and self.actor.get("role") == "admin"


def client_ip(headers) -> str:
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("x-real-ip") or "unknown"


class AuditRecorder:
    def __init__(self, gateway):
        self.gateway = gateway
        self._pending = set()

    def record(self, context: RequestContext, action: str, resource_type: str,
               resource_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            print(f"[Audit] No hay event loop activo, no se registra {action}")
            return
        task = loop.create_task(self.record_now(context, action, resource_type, resource_id, details))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def record_now(self, context: RequestContext, action: str, resource_type: str,
                         resource_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> bool:
        try:
            entry = await self._build_entry(context, action, resource_type, resource_id, details)
            await self.gateway.insert(AUDIT_LOGS, entry.model_dump())
            return True
        except Exception as e:
            print(f"[Audit] Error al registrar {action} sobre {resource_type}/{resource_id}: {str(e)}")
            return False

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _build_entry(self, context, action, resource_type, resource_id, details) -> AuditLogEntry:
        actor = context.actor
        if not actor:
            user_id, user_email, user_name = ANONYMOUS_USER_ID, ANONYMOUS_USER_EMAIL, ANONYMOUS_USER_NAME
        else:
            user_id, user_email = actor["id"], actor["email"]
            user_name = await self._display_name(actor)
        return AuditLogEntry(
            userId=user_id,
            userEmail=user_email,
            userName=user_name,
            action=action,
            resourceType=resource_type,
            resourceId=resource_id,
            details=details or {},
            ipAddress=context.ip_address or "unknown",
            userAgent=context.user_agent or "unknown",
            timestamp=datetime.now(timezone.utc),
        )

    async def _display_name(self, actor) -> str:
        try:
            user = await self.gateway.find_one(USERS, {"uid": actor["id"]})
            if user and user.get("name"):
                return user["name"]
        except Exception as e:
            print(f"No se pudo obtener el nombre de {actor['email']}: {str(e)}")
        return actor["email"]


def audit_filters(action=None, resource_type=None, user_id=None, resource_id=None,
                  start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if action:
        query["action"] = action
    if resource_type:
        query["resourceType"] = resource_type
    if user_id:
        query["userId"] = user_id
    if resource_id:
        query["resourceId"] = resource_id
    if start_date or end_date:
        query["timestamp"] = {}
        if start_date:
            query["timestamp"]["$gte"] = start_date
        if end_date:
            query["timestamp"]["$lte"] = end_date
    return query


async def list_audit_logs(gateway, filters: Dict[str, Any], page: int = 1, limit: int = 50) -> Dict[str, Any]:
    page = max(page, 1)
    limit = max(limit, 1)
    total = await gateway.count(AUDIT_LOGS, filters)
    logs = await gateway.query(AUDIT_LOGS, filters, sort=[("timestamp", -1)], skip=(page - 1) * limit, limit=limit)
    return {
        "success": True,
        "data": logs,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
        "filters": {
            "actionTypes": await gateway.distinct(AUDIT_LOGS, "action"),
            "resourceTypes": await gateway.distinct(AUDIT_LOGS, "resourceType"),
        },
    }


CSV_HEADERS = ["Timestamp", "User", "Email", "Action", "Resource Type", "Resource ID", "Details", "IP Address"]


def audit_logs_to_csv(logs: List[Dict[str, Any]]) -> str:
    output = io.StringIO()
    output.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for log in logs:
        timestamp = log.get("timestamp")
        writer.writerow([
            timestamp.isoformat() if isinstance(timestamp, datetime) else str(timestamp or ""),
            log.get("userName", ""),
            log.get("userEmail", ""),
            log.get("action", ""),
            log.get("resourceType", ""),
            log.get("resourceId") or "",
            json.dumps(log.get("details") or {}, default=str),
            log.get("ipAddress") or "",
        ])
    return output.getvalue()
