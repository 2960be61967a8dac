from datetime import datetime, timedelta, timezone

import pytest

from app.config.database import INSPECTIONS
from app.services.compliance import (
    expiration_date, format_for_export, format_privacy_consent, should_delete_data, sweep,
)


def test_expiration_uses_default_only_when_missing():
    date = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert expiration_date(date, 30) == datetime(2025, 1, 31, tzinfo=timezone.utc)
    assert expiration_date(date, None) == date + timedelta(days=365)
    assert expiration_date(date, 0) == date


def test_should_delete_data_is_strictly_after_expiration(now):
    assert should_delete_data(now - timedelta(days=31), 30, now)
    assert not should_delete_data(now - timedelta(days=30), 30, now)
    assert not should_delete_data(now - timedelta(days=10), 30, now)


def test_naive_dates_are_treated_as_utc(now):
    naive = (now - timedelta(days=400)).replace(tzinfo=None)
    assert should_delete_data(naive, 365, now)


async def insert(gateway, status, days_ago, now, retention=365):
    result = await gateway.insert(INSPECTIONS, {
        "inspectionNumber": f"INSP-{status}-{days_ago}",
        "status": status,
        "inspectionDate": now - timedelta(days=days_ago),
        "dataRetentionDays": retention,
    })
    return result["id"]


@pytest.mark.asyncio
async def test_sweep_deletes_only_expired_completed(gateway, now):
    expired = await insert(gateway, "completed", 400, now)
    recent = await insert(gateway, "completed", 10, now)
    old_draft = await insert(gateway, "draft", 900, now)
    short_retention = await insert(gateway, "completed", 10, now, retention=5)

    deleted = await sweep(gateway, now)

    assert deleted == 2
    assert await gateway.get_by_id(INSPECTIONS, expired) is None
    assert await gateway.get_by_id(INSPECTIONS, short_retention) is None
    assert await gateway.get_by_id(INSPECTIONS, recent) is not None
    assert await gateway.get_by_id(INSPECTIONS, old_draft) is not None


@pytest.mark.asyncio
async def test_sweep_with_nothing_to_delete(gateway, now):
    await insert(gateway, "completed", 1, now)
    assert await sweep(gateway, now) == 0
    assert await gateway.count(INSPECTIONS) == 1


def test_format_privacy_consent():
    at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert format_privacy_consent(True, at) == "Privacy consent: Granted on 2026-01-02T03:04:05+00:00"
    assert format_privacy_consent(False, at).startswith("Privacy consent: Not Granted")


def test_format_for_export_keeps_data():
    exported = format_for_export({"id": "1", "barcode": "X"})
    assert exported["id"] == "1"
    assert exported["format"] == "GDPR-compliant export"
    assert "exportedAt" in exported


def test_export_states_privacy_consent():
    exported = format_for_export({"id": "1", "privacyConsent": True})
    assert exported["privacyConsentStatement"].startswith("Privacy consent: Granted on ")


@pytest.mark.asyncio
async def test_second_sweep_finds_nothing_left(gateway, now):
    await insert(gateway, "completed", 400, now)
    await insert(gateway, "completed", 40, now, retention=30)

    assert await sweep(gateway, now) == 2
    assert await sweep(gateway, now) == 0
    assert await gateway.count(INSPECTIONS) == 0
