from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.dependencies.auth import get_current_actor
from app.dependencies.services import get_audit_recorder
from app.main import app
from app.services.audit import AuditRecorder, RequestContext
from app.services.drafts import DraftPersistenceController
from app.services.gateway import MongoGateway, get_gateway
from app.services.inspections import InspectionService

TECH = {"id": "uid-tech", "email": "tech@x.com", "role": "technician"}
OTHER_TECH = {"id": "uid-other", "email": "other@x.com", "role": "technician"}
ADMIN = {"id": "uid-admin", "email": "boss@x.com", "role": "admin"}
MANAGER = {"id": "uid-manager", "email": "manager@x.com", "role": "manager"}


def complete_form(**overrides):
    """Formulario que pasa los seis pasos."""
    form = {
        "inspectorName": "Tom Tech",
        "inspectorEmail": "tech@x.com",
        "inspectionDate": "2026-01-15T09:30:00Z",
        "vehicleInfo": {"make": "Toyota", "model": "Hilux", "vin": "JTEBU5JR2A5012345"},
        "location": {"current": {"latitude": -33.86, "longitude": 151.2}},
        "barcode": "JTEBU5JR2A5012345",
        "barcodeType": "VIN",
        "photos": [{"fileName": "front.jpg", "url": "https://cdn.x.com/front.jpg"}],
        "checklist": [
            {"category": "Exterior", "items": [{"item": "Paint condition", "status": "OK"}]},
        ],
        "signatures": {"technician": "data:image/png;base64,AAAA"},
        "privacyConsent": True,
    }
    form.update(overrides)
    return form


class FakeAudit:
    """Sustituye a AuditRecorder en las pruebas de rutas: guarda las llamadas."""

    def __init__(self):
        self.calls = []

    def record(self, context, action, resource_type, resource_id=None, details=None):
        self.calls.append({
            "actor": context.actor,
            "action": action,
            "resourceType": resource_type,
            "resourceId": resource_id,
            "details": details or {},
        })

    def actions(self):
        return [call["action"] for call in self.calls]


@pytest.fixture
def database():
    return AsyncMongoMockClient()["pdi_test"]


@pytest.fixture
def gateway(database):
    return MongoGateway(database)


@pytest.fixture
def recorder(gateway):
    return AuditRecorder(gateway)


@pytest.fixture
def service(gateway, recorder):
    return InspectionService(gateway, recorder)


@pytest.fixture
def drafts(service):
    return DraftPersistenceController(service)


@pytest.fixture
def tech_context():
    return RequestContext(actor=TECH, ip_address="10.0.0.1", user_agent="pytest")


@pytest.fixture
def admin_context():
    return RequestContext(actor=ADMIN, ip_address="10.0.0.2", user_agent="pytest")


@pytest.fixture
def now():
    return datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_audit():
    return FakeAudit()


@pytest.fixture
def api(gateway, fake_audit):
    """TestClient sin eventos de startup (no hay Firebase ni MongoDB reales)."""
    state = {"actor": TECH}

    async def current_actor():
        return state["actor"]

    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_audit_recorder] = lambda: fake_audit
    app.dependency_overrides[get_current_actor] = current_actor
    client = TestClient(app)

    def login_as(actor):
        state["actor"] = actor

    client.login_as = login_as
    yield client
    app.dependency_overrides.clear()
