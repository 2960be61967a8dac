import csv
import io
from datetime import datetime, timezone

import pytest

from app.config.database import AUDIT_LOGS, INSPECTIONS, USERS
from app.errors import StoreError
from app.services.audit import (
    CSV_HEADERS, AuditRecorder, RequestContext, audit_filters, audit_logs_to_csv, client_ip, list_audit_logs,
)
from app.services.inspections import InspectionService

from conftest import TECH, complete_form


class BrokenAuditGateway:
    """Delega en el gateway real salvo las escrituras de auditoría, que fallan."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def insert(self, collection, record):
        if collection == AUDIT_LOGS:
            raise StoreError("audit store unavailable")
        return await self.gateway.insert(collection, record)

    def __getattr__(self, name):
        return getattr(self.gateway, name)


@pytest.mark.asyncio
async def test_anonymous_entry(recorder, gateway):
    ok = await recorder.record_now(RequestContext(), "compliance.retention_sweep", "system", None, {"deletedCount": 0})

    assert ok
    [entry] = await gateway.query(AUDIT_LOGS)
    assert entry["userId"] == "anonymous"
    assert entry["userEmail"] == "anonymous@system"
    assert entry["userName"] == "Anonymous User"
    assert entry["ipAddress"] == "unknown"
    assert entry["userAgent"] == "unknown"
    assert entry["resourceId"] is None
    assert entry["details"] == {"deletedCount": 0}


@pytest.mark.asyncio
async def test_user_name_comes_from_users_collection(recorder, gateway):
    await gateway.insert(USERS, {"uid": TECH["id"], "email": TECH["email"], "name": "Tom Tech"})
    context = RequestContext(actor=TECH, ip_address="1.2.3.4", user_agent="Mozilla")

    await recorder.record_now(context, "inspection.updated", "inspection", "abc")

    [entry] = await gateway.query(AUDIT_LOGS)
    assert entry["userName"] == "Tom Tech"
    assert entry["userId"] == "uid-tech"
    assert entry["ipAddress"] == "1.2.3.4"
    assert entry["userAgent"] == "Mozilla"
    assert entry["details"] == {}


@pytest.mark.asyncio
async def test_user_name_falls_back_to_email(recorder, gateway):
    await recorder.record_now(RequestContext(actor=TECH), "inspection.created", "inspection", "abc")
    [entry] = await gateway.query(AUDIT_LOGS)
    assert entry["userName"] == "tech@x.com"


@pytest.mark.asyncio
async def test_record_is_fire_and_forget(recorder, gateway):
    recorder.record(RequestContext(actor=TECH), "inspection.deleted", "inspection", "abc")
    await recorder.drain()
    assert await gateway.count(AUDIT_LOGS, {"action": "inspection.deleted"}) == 1


def test_record_without_running_loop_is_ignored(recorder):
    recorder.record(RequestContext(), "inspection.created", "inspection", "abc")
    assert not recorder._pending


@pytest.mark.asyncio
async def test_audit_failure_does_not_break_inspection_create(gateway, tech_context):
    broken = BrokenAuditGateway(gateway)
    recorder = AuditRecorder(broken)
    service = InspectionService(broken, recorder)

    record = await service.create(tech_context, complete_form())
    await recorder.drain()

    assert await gateway.get_by_id(INSPECTIONS, record["id"]) is not None
    assert await gateway.count(AUDIT_LOGS) == 0
    assert await recorder.record_now(tech_context, "inspection.created", "inspection", record["id"]) is False


@pytest.mark.asyncio
async def test_inspection_lifecycle_is_audited(service, recorder, gateway, tech_context, admin_context):
    record = await service.create(tech_context, complete_form())
    await service.update(tech_context, record["id"], {"barcode": "COMP123456"})
    await service.complete(admin_context, record["id"])
    await service.delete(admin_context, record["id"])
    await recorder.drain()

    actions = [log["action"] for log in await gateway.query(AUDIT_LOGS, sort=[("timestamp", 1)])]
    assert sorted(actions) == sorted([
        "inspection.created", "inspection.updated", "inspection.completed", "inspection.deleted",
    ])


@pytest.mark.parametrize("headers, expected", [
    ({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "203.0.113.7"),
    ({"x-real-ip": "198.51.100.2"}, "198.51.100.2"),
    ({"x-forwarded-for": "", "x-real-ip": "198.51.100.2"}, "198.51.100.2"),
    ({}, "unknown"),
])
def test_client_ip(headers, expected):
    assert client_ip(headers) == expected


def test_audit_filters():
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert audit_filters() == {}
    assert audit_filters(action="user.created", start_date=start) == {
        "action": "user.created",
        "timestamp": {"$gte": start},
    }


@pytest.mark.asyncio
async def test_list_audit_logs_paginates(recorder, gateway):
    for index in range(5):
        await recorder.record_now(RequestContext(), "inspection.created", "inspection", str(index))
    await recorder.record_now(RequestContext(), "user.created", "user", "u1")

    page = await list_audit_logs(gateway, {"resourceType": "inspection"}, page=2, limit=2)

    assert page["success"]
    assert len(page["data"]) == 2
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}
    assert sorted(page["filters"]["actionTypes"]) == ["inspection.created", "user.created"]
    assert sorted(page["filters"]["resourceTypes"]) == ["inspection", "user"]


def test_audit_logs_to_csv():
    logs = [{
        "timestamp": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "userName": 'Tom "TT" Tech',
        "userEmail": "tech@x.com",
        "action": "inspection.created",
        "resourceType": "inspection",
        "resourceId": "abc",
        "details": {"status": "draft"},
        "ipAddress": "1.2.3.4",
    }]

    content = audit_logs_to_csv(logs)

    lines = content.splitlines()
    assert lines[0] == ",".join(CSV_HEADERS)
    [row] = list(csv.reader(io.StringIO(lines[1])))
    assert row == [
        "2026-01-02T03:04:05+00:00", 'Tom "TT" Tech', "tech@x.com", "inspection.created",
        "inspection", "abc", '{"status": "draft"}', "1.2.3.4",
    ]
    assert lines[1].startswith('"2026-01-02')
