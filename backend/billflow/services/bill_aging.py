"""Aging buckets for bills still awaiting approval."""
from collections.abc import Iterable
from datetime import date

from billflow.models.bill import ApprovalStatus

AGING_BUCKETS = ("0-30", "31-60", "61-90", "90+")


def aging_bucket(days_pending: int) -> str:
    """Bucket label for a number of days since the bill date. Future dates count as 0-30."""
    if days_pending <= 30:
        return "0-30"
    if days_pending <= 60:
        return "31-60"
    if days_pending <= 90:
        return "61-90"
    return "90+"


def bucket_pending_bills(rows: Iterable[tuple], today: date) -> dict[str, int]:
    """Count pending bills per aging bucket.

    Args:
        rows: (approval_status, bill_date) pairs. Anything not Approved or
            Rejected after coercion is pending; rows without a date are skipped.
        today: Reference date for the age.

    Returns:
        Dict keyed by every label in AGING_BUCKETS, in order.
    """
    counts = dict.fromkeys(AGING_BUCKETS, 0)
    for stored_status, bill_date in rows:
        if ApprovalStatus.coerce(stored_status).is_terminal or bill_date is None:
            continue
        counts[aging_bucket((today - bill_date).days)] += 1
    return counts
