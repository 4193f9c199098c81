"""Tests for the bill decision and escalation endpoints.

The workflow service is patched; these check HTTP mapping and response shape.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from billflow.api.v1 import bills as bills_api
from billflow.core.deps import get_current_employee
from billflow.db.session import get_session, get_sync_session
from billflow.main import app
from billflow.schemas.approval_rule import ApprovalRuleOut, ApproverLevelOut

BILL_ID = uuid.UUID("d1b2c3d4-e5f6-7890-abcd-ef1234567890")
APPROVER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000e1")
NEXT_APPROVER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000e2")


# ─── Helpers ──────────────────────────────────────────────────────────────────

class FakeApprover:
    id = APPROVER_ID
    email = "manager@billflow.local"
    full_name = "Sam Manager"
    is_admin = False
    is_active = True
    deleted_at = None


async def override_approver():
    return FakeApprover()


def override_sync_session():
    yield MagicMock()


def _decided_bill(status: str, current_approver_id=None) -> SimpleNamespace:
    return SimpleNamespace(
        id=BILL_ID,
        bill_number="BILL-20260301-ABC123",
        vendor_id=uuid.uuid4(),
        bill_type_id=None,
        total_payable_amount=Decimal("1575.00"),
        approval_status=status,
        current_approver_id=current_approver_id,
        items=[],
        approval_history=[
            SimpleNamespace(
                approver_id=APPROVER_ID, status="Approved", level=1, remarks=None,
                timestamp=datetime(2026, 3, 2, tzinfo=timezone.utc),
            )
        ],
    )


async def _post(path: str, json=None):
    app.dependency_overrides[get_sync_session] = override_sync_session
    app.dependency_overrides[get_current_employee] = override_approver
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.post(path, json=json, headers={"X-Employee-Id": str(APPROVER_ID)})
    finally:
        app.dependency_overrides.clear()


# ─── Approve / reject ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_approve_returns_updated_bill():
    bill = _decided_bill("Pending", current_approver_id=NEXT_APPROVER_ID)
    with patch.object(bills_api.bill_workflow, "record_decision", return_value=bill) as mock_decide:
        response = await _post(f"/api/v1/bills/{BILL_ID}/approve", json={"remarks": "checked"})

    assert response.status_code == 200
    data = response.json()
    assert data["current_approver_id"] == str(NEXT_APPROVER_ID)
    assert data["approval_status"] == "Pending"
    assert data["status_text"] == "Pending"
    assert len(data["approval_history"]) == 1

    args, kwargs = mock_decide.call_args
    assert args[1] == BILL_ID
    assert args[3] == "approve"
    assert kwargs["remarks"] == "checked"


@pytest.mark.asyncio
async def test_reject_without_body():
    bill = _decided_bill("Rejected")
    with patch.object(bills_api.bill_workflow, "record_decision", return_value=bill) as mock_decide:
        response = await _post(f"/api/v1/bills/{BILL_ID}/reject")

    assert response.status_code == 200
    assert response.json()["approval_status"] == "Rejected"
    assert mock_decide.call_args.kwargs["remarks"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("exc, expected", [
    (PermissionError("not yours"), 403),
    (LookupError("no bill"), 404),
    (ValueError("already decided"), 400),
])
async def test_decision_errors_map_to_http_status(exc, expected):
    with patch.object(bills_api.bill_workflow, "record_decision", side_effect=exc):
        response = await _post(f"/api/v1/bills/{BILL_ID}/approve")

    assert response.status_code == expected
    assert response.json()["detail"] == str(exc)


# ─── Escalation ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_escalation_endpoint_returns_target():
    found = {
        "bill_id": BILL_ID,
        "level": 2,
        "primary_approver_id": NEXT_APPROVER_ID,
        "escalated_to": APPROVER_ID,
        "pending_since": datetime(2026, 3, 1, tzinfo=timezone.utc),
        "overdue_days": 4,
    }
    app.dependency_overrides[get_sync_session] = override_sync_session
    app.dependency_overrides[get_current_employee] = override_approver
    try:
        with patch.object(bills_api.bill_workflow, "get_bill_escalation", return_value=found):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get(f"/api/v1/bills/{BILL_ID}/escalation")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["escalated_to"] == str(APPROVER_ID)
    assert response.json()["overdue_days"] == 4


@pytest.mark.asyncio
async def test_escalation_endpoint_null_when_not_overdue():
    app.dependency_overrides[get_sync_session] = override_sync_session
    app.dependency_overrides[get_current_employee] = override_approver
    try:
        with patch.object(bills_api.bill_workflow, "get_bill_escalation", return_value=None):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.get(f"/api/v1/bills/{BILL_ID}/escalation")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() is None


# ─── Create / update ──────────────────────────────────────────────────────────

VENDOR_ID = uuid.UUID("c1b2c3d4-e5f6-7890-abcd-ef1234567890")

BILL_BODY = {
    "vendor_id": str(VENDOR_ID),
    "bill_date": "2026-03-01",
    "items": [{"name": "Steel rods", "category": "Raw Material", "quantity": "10", "unit_price": "450"}],
    "vat_applicable": True,
    "vat_percentage": "5",
}


def _rule(max_amount: str, approver_id: uuid.UUID) -> ApprovalRuleOut:
    return ApprovalRuleOut(
        id=uuid.uuid4(),
        name="Up to " + max_amount,
        min_amount=Decimal("0"),
        max_amount=Decimal(max_amount),
        approver_levels=[ApproverLevelOut(level=1, approver_id=approver_id)],
    )


def _vendor_result(vendor_id) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = vendor_id
    return result


def make_bill_session(*results) -> AsyncMock:
    def _add(obj):
        if getattr(obj, "id", None) is None:
            obj.id = uuid.uuid4()

    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(side_effect=list(results))
    mock_session.add = MagicMock(side_effect=_add)
    return mock_session


async def _send(method: str, path: str, mock_session, json=None):
    async def _override():
        yield mock_session

    app.dependency_overrides[get_session] = _override
    app.dependency_overrides[get_current_employee] = override_approver
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.request(method, path, json=json)
    finally:
        app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_create_bill_computes_totals_and_routes():
    mock_session = make_bill_session(_vendor_result(VENDOR_ID))
    rules = [_rule("10000", NEXT_APPROVER_ID)]

    with patch.object(bills_api.bill_workflow, "load_rules_async", new=AsyncMock(return_value=rules)), \
         patch.object(bills_api.audit_svc, "log_async", new=AsyncMock()) as mock_audit:
        response = await _send("POST", "/api/v1/bills", mock_session, json=BILL_BODY)

    assert response.status_code == 201
    data = response.json()
    # 10 x 450 = 4500, plus 5% VAT
    assert Decimal(data["items"][0]["net_amount"]) == Decimal("4500.00")
    assert Decimal(data["vat_amount"]) == Decimal("225.00")
    assert Decimal(data["total_payable_amount"]) == Decimal("4725.00")
    assert data["current_approver_id"] == str(NEXT_APPROVER_ID)
    assert data["approval_status"] == "Pending"
    assert data["approval_history"] == []
    assert data["entry_by"] == str(APPROVER_ID)
    assert data["bill_number"].startswith("BILL-")
    mock_session.add.assert_called_once()
    mock_session.commit.assert_awaited_once()
    assert mock_audit.await_args.kwargs["action"] == "bill.created"


@pytest.mark.asyncio
async def test_create_bill_without_matching_rule_has_no_approver(caplog):
    mock_session = make_bill_session(_vendor_result(VENDOR_ID))
    rules = [_rule("1000", NEXT_APPROVER_ID)]

    with caplog.at_level(logging.WARNING, logger="billflow.api.v1.bills"), \
         patch.object(bills_api.bill_workflow, "load_rules_async", new=AsyncMock(return_value=rules)), \
         patch.object(bills_api.audit_svc, "log_async", new=AsyncMock()):
        response = await _send("POST", "/api/v1/bills", mock_session, json=BILL_BODY)

    assert response.status_code == 201
    assert response.json()["current_approver_id"] is None
    assert any("matches no approval rule" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_create_bill_unknown_vendor_returns_400():
    mock_session = make_bill_session(_vendor_result(None))

    response = await _send("POST", "/api/v1/bills", mock_session, json=BILL_BODY)

    assert response.status_code == 400
    assert response.json()["detail"] == "Unknown vendor_id."
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_update_bill_with_history_returns_409():
    bill = _decided_bill("Pending", current_approver_id=NEXT_APPROVER_ID)
    bill_result = MagicMock()
    bill_result.scalars.return_value.first.return_value = bill
    mock_session = make_bill_session(bill_result)

    response = await _send("PUT", f"/api/v1/bills/{BILL_ID}", mock_session, json=BILL_BODY)

    assert response.status_code == 409
    # Nothing beyond the bill lookup ran
    assert mock_session.execute.await_count == 1
    mock_session.commit.assert_not_awaited()
    assert bill.total_payable_amount == Decimal("1575.00")
