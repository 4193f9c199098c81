"""Approval routing: which rule applies to a bill and who must act next.

Everything here is a pure function over already-loaded data. Nothing raises for
"not found" conditions; a missing rule or level simply yields None so callers can
always render something. Configuration problems are reported through
check_rule_configuration() instead.
"""
import logging
import uuid
from collections.abc import Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from itertools import combinations

from billflow.models.bill import ApprovalStatus

logger = logging.getLogger(__name__)


# ─── Rule matching ───

def is_rule_active(rule, today: date | None = None) -> bool:
    """A rule without an effective date is always active, otherwise from that date on."""
    if rule.effective_date is None:
        return True
    if today is None:
        today = datetime.now(timezone.utc).date()
    return rule.effective_date <= today


def find_matching_rule(amount: Decimal, rules: Sequence, today: date | None = None):
    """Return the first active rule whose inclusive band contains amount.

    Rules are scanned in the order given, which is their insertion order when
    loaded by the workflow service. Overlapping bands are not resolved here:
    the first hit wins.

    Returns:
        The matching rule, or None.
    """
    for rule in rules:
        if not is_rule_active(rule, today):
            continue
        if rule.min_amount <= amount <= rule.max_amount:
            return rule
    return None


# ─── Next approver ───

def count_approved(bill) -> int:
    return sum(
        1 for action in (bill.approval_history or [])
        if ApprovalStatus.coerce(action.status) is ApprovalStatus.APPROVED
    )


def get_next_approver(bill, rule) -> uuid.UUID | None:
    """Return the approver for the level after the last approved one.

    None when there is no rule, the bill is already approved or rejected, or
    every configured level has been satisfied.
    """
    if rule is None or ApprovalStatus.coerce(bill.approval_status).is_terminal:
        return None

    next_level = count_approved(bill) + 1
    for approver_level in rule.approver_levels:
        if approver_level.level == next_level:
            return approver_level.approver_id
    return None


def process_bill(bill, rules: Sequence, today: date | None = None):
    """Return a shallow copy of bill with current_approver_id recomputed.

    bill must be a pydantic model (BillApprovalState or a subclass). No other
    field is touched, so calling this repeatedly is a no-op after the first call.
    """
    rule = find_matching_rule(bill.total_payable_amount, rules, today)
    return bill.model_copy(update={"current_approver_id": get_next_approver(bill, rule)})


# ─── Escalation ───

def resolve_escalation(approver_level, pending_since: datetime, now: datetime | None = None) -> dict | None:
    """Work out which alternative approver a stalled level has escalated to.

    Each full escalation_timeout_days period without a decision moves one step
    down alternative_approvers, stopping at the last one.

    Returns:
        Dict with approver_id, alternative_index (0-based) and overdue_days, or
        None if the level has no timeout, no alternatives, or is not yet overdue.
    """
    timeout = approver_level.escalation_timeout_days
    alternatives = list(approver_level.alternative_approvers or [])
    if not timeout or not alternatives:
        return None

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if pending_since.tzinfo is None:
        pending_since = pending_since.replace(tzinfo=timezone.utc)

    elapsed_days = (now - pending_since).days
    periods = elapsed_days // timeout
    if periods < 1:
        return None

    index = min(periods, len(alternatives)) - 1
    return {
        "approver_id": uuid.UUID(str(alternatives[index])),
        "alternative_index": index,
        "overdue_days": elapsed_days - timeout,
    }


# ─── Configuration diagnostics ───

def bands_overlap(min_amount: Decimal, max_amount: Decimal, rule) -> bool:
    return min_amount <= rule.max_amount and rule.min_amount <= max_amount


def check_rule_configuration(rules: Sequence) -> list[dict]:
    """Report misconfigurations the matcher silently tolerates.

    Returns:
        List of dicts with keys: code, message, rule_ids. Codes are
        inverted_band, no_levels, duplicate_level, level_gap, overlapping_bands.
    """
    warnings: list[dict] = []

    for rule in rules:
        if rule.min_amount > rule.max_amount:
            warnings.append({
                "code": "inverted_band",
                "message": f"Rule '{rule.name}' has min_amount {rule.min_amount} above max_amount {rule.max_amount}.",
                "rule_ids": [rule.id],
            })

        levels = [lvl.level for lvl in rule.approver_levels]
        if not levels:
            warnings.append({
                "code": "no_levels",
                "message": f"Rule '{rule.name}' has no approver levels; matching bills get no approver.",
                "rule_ids": [rule.id],
            })
            continue
        if len(levels) != len(set(levels)):
            warnings.append({
                "code": "duplicate_level",
                "message": f"Rule '{rule.name}' defines the same level more than once.",
                "rule_ids": [rule.id],
            })
        expected = list(range(1, len(set(levels)) + 1))
        if sorted(set(levels)) != expected:
            warnings.append({
                "code": "level_gap",
                "message": (
                    f"Rule '{rule.name}' levels {sorted(set(levels))} are not numbered 1..n; "
                    "routing stops at the first missing level."
                ),
                "rule_ids": [rule.id],
            })

    for first, second in combinations(rules, 2):
        if bands_overlap(first.min_amount, first.max_amount, second):
            warnings.append({
                "code": "overlapping_bands",
                "message": (
                    f"Rules '{first.name}' and '{second.name}' overlap; "
                    f"'{first.name}' wins for amounts in both bands."
                ),
                "rule_ids": [first.id, second.id],
            })

    for warning in warnings:
        logger.warning("approval rule config: %s", warning["message"])

    return warnings