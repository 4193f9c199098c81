from billflow.models.employee import Employee
from billflow.models.vendor import Vendor
from billflow.models.bill_type import BillType, ApprovalFlowStep
from billflow.models.approval_rule import ApprovalRule, ApproverLevel
from billflow.models.bill import Bill, BillItem, BillApprovalAction, ApprovalStatus
from billflow.models.audit import AuditLog

__all__ = [
    "Employee",
    "Vendor",
    "BillType", "ApprovalFlowStep",
    "ApprovalRule", "ApproverLevel",
    "Bill", "BillItem", "BillApprovalAction", "ApprovalStatus",
    "AuditLog",
]
