"""Tests for the dashboard and report endpoints with a mocked AsyncSession."""
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.dialects import postgresql

from billflow.core.deps import get_current_employee
from billflow.db.session import get_session
from billflow.main import app

VENDOR_ID = uuid.UUID("c1b2c3d4-e5f6-7890-abcd-ef1234567890")


# ─── Helpers ──────────────────────────────────────────────────────────────────

class FakeApprover:
    id = uuid.UUID("00000000-0000-0000-0000-0000000000e1")
    email = "manager@billflow.local"
    is_admin = False
    is_active = True
    deleted_at = None


async def override_approver():
    return FakeApprover()


def make_session_override(mock_session):
    async def _override():
        yield mock_session
    return _override


def _result(one=None, all_rows=None, scalar=None) -> MagicMock:
    result = MagicMock()
    result.one.return_value = one
    result.all.return_value = all_rows or []
    result.scalar_one.return_value = scalar
    return result


def _summary_bill(status="Pending") -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        bill_number="BILL-20260301-ABC123",
        vendor_id=VENDOR_ID,
        total_payable_amount=Decimal("840.00"),
        approval_status=status,
        entry_date=date(2026, 3, 1),
    )


async def _get(path: str, mock_session):
    app.dependency_overrides[get_session] = make_session_override(mock_session)
    app.dependency_overrides[get_current_employee] = override_approver
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.get(path)
    finally:
        app.dependency_overrides.clear()


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


# ─── Dashboard ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_dashboard_aggregates():
    """Execute order: pending totals, pending rows, completed this month, vendors, recent rows."""
    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(side_effect=[
        _result(one=(2, Decimal("1680.00"))),
        _result(all_rows=[(_summary_bill(), "Acme Supplies Ltd")]),
        _result(one=(1, Decimal("500.00"))),
        _result(scalar=3),
        _result(all_rows=[]),
    ])

    response = await _get("/api/v1/reports/dashboard", mock_session)

    assert response.status_code == 200
    data = response.json()
    assert data["my_pending_count"] == 2
    assert Decimal(data["my_pending_amount"]) == Decimal("1680.00")
    assert data["my_pending_bills"][0]["vendor_name"] == "Acme Supplies Ltd"
    assert data["completed_month_count"] == 1
    assert Decimal(data["completed_month_amount"]) == Decimal("500.00")
    assert data["total_vendors"] == 3

    # Non-admins only see their own queue
    pending_sql = _sql(mock_session.execute.call_args_list[0].args[0])
    assert "current_approver_id" in pending_sql
    # Completed this month is dated by the last history entry
    completed_sql = _sql(mock_session.execute.call_args_list[2].args[0])
    assert "max(bill_approval_actions.timestamp)" in completed_sql


@pytest.mark.asyncio
async def test_approval_summary_coerces_legacy_statuses():
    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(return_value=_result(all_rows=[
        ("Approved", 2), ("1", 1), ("Rejected", 1), ("0", 2), ("Pending", 4), ("2", 1),
    ]))

    response = await _get("/api/v1/reports/approval-summary", mock_session)

    assert response.status_code == 200
    assert response.json() == {"approved": 3, "pending": 5, "rejected": 3}


# ─── Vendor summary / aging ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_vendor_summary_rows():
    other_vendor = uuid.uuid4()
    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(return_value=_result(all_rows=[
        (VENDOR_ID, "Acme Supplies Ltd", 3, Decimal("12500.00")),
        (other_vendor, "Globex Logistics", 1, Decimal("420.00")),
    ]))

    response = await _get("/api/v1/reports/vendor-summary", mock_session)

    assert response.status_code == 200
    data = response.json()
    assert [row["vendor_name"] for row in data] == ["Acme Supplies Ltd", "Globex Logistics"]
    assert data[0]["bill_count"] == 3
    assert Decimal(data[0]["total_amount"]) == Decimal("12500.00")
    sql = _sql(mock_session.execute.call_args.args[0])
    assert "GROUP BY vendors.id" in sql
    assert "DESC" in sql


@pytest.mark.asyncio
async def test_aging_report_buckets_pending_bills():
    today = datetime.now(timezone.utc).date()
    mock_session = AsyncMock()
    mock_session.execute = AsyncMock(return_value=_result(all_rows=[
        ("Pending", today - timedelta(days=10)),
        ("Pending", today - timedelta(days=40)),
        ("Pending", today - timedelta(days=95)),
        ("Approved", today - timedelta(days=95)),
        ("Rejected", today - timedelta(days=10)),
    ]))

    response = await _get("/api/v1/reports/aging", mock_session)

    assert response.status_code == 200
    data = response.json()
    assert {b["label"]: b["count"] for b in data["buckets"]} == {"0-30": 1, "31-60": 1, "61-90": 0, "90+": 1}
    assert [b["label"] for b in data["buckets"]] == ["0-30", "31-60", "61-90", "90+"]
    assert data["total"] == 3
