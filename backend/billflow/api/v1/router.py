from fastapi import APIRouter

from billflow.api.v1 import approval_rules, bill_types, bills, employees, reports, vendors

api_router = APIRouter()

api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(vendors.router, prefix="/vendors", tags=["vendors"])
api_router.include_router(bill_types.router, prefix="/bill-types", tags=["bill-types"])
api_router.include_router(approval_rules.router, prefix="/approval-rules", tags=["approval-rules"])
api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
