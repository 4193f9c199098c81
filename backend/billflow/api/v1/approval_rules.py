"""Approval rule configuration endpoints.

Writes keep approver levels sorted and queue a re-route of pending bills, since
current_approver_id is derived from the rule set.
"""
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billflow.core.config import settings
from billflow.core.deps import get_current_employee, require_admin
from billflow.db.session import get_session
from billflow.models.approval_rule import ApprovalRule, ApproverLevel
from billflow.schemas.approval_rule import (
    ApprovalRuleIn,
    ApprovalRuleOut,
    RuleDiagnosticsResponse,
    RuleWarningOut,
)
from billflow.services import audit as audit_svc
from billflow.services.approval_router import bands_overlap, check_rule_configuration
from billflow.services.bill_workflow import load_rules_async

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Helpers ───

def _build_levels(body: ApprovalRuleIn) -> list[ApproverLevel]:
    return [
        ApproverLevel(
            level=lvl.level,
            approver_id=lvl.approver_id,
            escalation_timeout_days=lvl.escalation_timeout_days,
            alternative_approvers=[str(a) for a in lvl.alternative_approvers],
        )
        for lvl in body.approver_levels
    ]


async def _check_overlap(db: AsyncSession, body: ApprovalRuleIn, exclude_id: uuid.UUID | None = None) -> None:
    """Refuse overlapping bands when the overlap policy is 'reject'; otherwise just warn."""
    existing = [r for r in await load_rules_async(db) if r.id != exclude_id]
    clashes = [r for r in existing if bands_overlap(body.min_amount, body.max_amount, r)]
    if not clashes:
        return

    names = ", ".join(f"'{r.name}'" for r in clashes)
    if settings.APPROVAL_RULE_OVERLAP_POLICY == "reject":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Amount band {body.min_amount}-{body.max_amount} overlaps {names}.",
        )
    logger.warning("Approval rule '%s' overlaps %s; first match wins.", body.name, names)


def _queue_reroute() -> None:
    try:
        from billflow.workers.approval_tasks import reprocess_pending_bills  # noqa: PLC0415
        reprocess_pending_bills.delay()
    except Exception as exc:
        # Not fatal: the daily beat run re-routes anyway
        logger.warning("Failed to enqueue reprocess_pending_bills: %s", exc)


async def _get_rule_or_404(db: AsyncSession, rule_id: uuid.UUID) -> ApprovalRule:
    result = await db.execute(select(ApprovalRule).where(ApprovalRule.id == rule_id))
    rule = result.scalars().first()
    if rule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Approval rule not found.")
    return rule


# ─── List / diagnostics / detail ───

@router.get(
    "",
    response_model=list[ApprovalRuleOut],
    summary="List approval rules in matching order",
)
async def list_rules(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
    search: str | None = Query(default=None, description="Case-insensitive match on rule name"),
):
    rules = await load_rules_async(db)
    if search:
        term = search.lower()
        rules = [r for r in rules if term in r.name.lower()]
    return rules


@router.get(
    "/diagnostics",
    response_model=RuleDiagnosticsResponse,
    summary="Report overlapping bands and level numbering problems",
)
async def rule_diagnostics(
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    warnings = [RuleWarningOut(**w) for w in check_rule_configuration(await load_rules_async(db))]
    return RuleDiagnosticsResponse(warnings=warnings, total=len(warnings))


@router.get(
    "/{rule_id}",
    response_model=ApprovalRuleOut,
    summary="Get one approval rule",
)
async def get_rule(
    rule_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(get_current_employee)],
):
    return ApprovalRuleOut.model_validate(await _get_rule_or_404(db, rule_id))


# ─── Create / update / delete ───

@router.post(
    "",
    response_model=ApprovalRuleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an approval rule (admin)",
)
async def create_rule(
    body: ApprovalRuleIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    await _check_overlap(db, body)

    rule = ApprovalRule(
        name=body.name,
        min_amount=body.min_amount,
        max_amount=body.max_amount,
        effective_date=body.effective_date,
        approver_levels=_build_levels(body),
    )
    db.add(rule)
    await db.flush()
    await audit_svc.log_async(
        db, action="approval_rule.created", entity_type="approval_rule",
        entity_id=rule.id, actor=current_employee, after=body.model_dump(mode="json"),
    )
    await db.commit()
    await db.refresh(rule)

    logger.info("Approval rule created: %s (%s-%s)", rule.name, rule.min_amount, rule.max_amount)
    _queue_reroute()
    return ApprovalRuleOut.model_validate(rule)


@router.put(
    "/{rule_id}",
    response_model=ApprovalRuleOut,
    summary="Replace an approval rule (admin)",
)
async def update_rule(
    rule_id: uuid.UUID,
    body: ApprovalRuleIn,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    rule = await _get_rule_or_404(db, rule_id)
    await _check_overlap(db, body, exclude_id=rule_id)

    before = ApprovalRuleOut.model_validate(rule).model_dump(mode="json")
    rule.name = body.name
    rule.min_amount = body.min_amount
    rule.max_amount = body.max_amount
    rule.effective_date = body.effective_date
    rule.approver_levels = _build_levels(body)

    await db.flush()
    await audit_svc.log_async(
        db, action="approval_rule.updated", entity_type="approval_rule",
        entity_id=rule.id, actor=current_employee, before=before, after=body.model_dump(mode="json"),
    )
    await db.commit()
    await db.refresh(rule)

    _queue_reroute()
    return ApprovalRuleOut.model_validate(rule)


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an approval rule (admin)",
)
async def delete_rule(
    rule_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    current_employee: Annotated[object, Depends(require_admin)],
):
    rule = await _get_rule_or_404(db, rule_id)
    before = ApprovalRuleOut.model_validate(rule).model_dump(mode="json")

    await db.delete(rule)
    await audit_svc.log_async(
        db, action="approval_rule.deleted", entity_type="approval_rule",
        entity_id=rule_id, actor=current_employee, before=before,
    )
    await db.commit()

    _queue_reroute()
