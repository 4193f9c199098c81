"""Append-only audit trail for approval rule edits and bill decisions."""
import json
import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from billflow.models.audit import AuditLog

logger = logging.getLogger(__name__)


def _build_entry(
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None,
    actor,
    before: Any | None,
    after: Any | None,
    notes: str | None,
) -> AuditLog:
    return AuditLog(
        actor_id=actor.id if actor is not None else None,
        actor_email=getattr(actor, "email", None),
        action=action,
        entity_type=entity_type,
        entity_id=uuid.UUID(str(entity_id)) if entity_id else None,
        before_state=json.dumps(before, default=str) if before is not None else None,
        after_state=json.dumps(after, default=str) if after is not None else None,
        notes=notes,
    )


def log(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    actor=None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> AuditLog:
    """Add an audit entry to a sync session (workflow service, Celery).

    Args:
        action: Dotted verb, e.g. 'bill.approved', 'approval_rule.updated'.
        entity_type: 'bill', 'approval_rule', ...
        actor: Employee who acted, or None for system jobs. Its email is
            denormalised so the trail survives the employee being removed.
        before / after: JSON-serialisable snapshots.

    The caller owns the transaction; this only flushes.
    """
    entry = _build_entry(action, entity_type, entity_id, actor, before, after, notes)
    db.add(entry)
    db.flush()
    logger.debug("Audit: %s %s/%s", action, entity_type, entity_id)
    return entry


async def log_async(
    db: AsyncSession,
    action: str,
    entity_type: str,
    entity_id: uuid.UUID | str | None = None,
    actor=None,
    before: Any | None = None,
    after: Any | None = None,
    notes: str | None = None,
) -> AuditLog:
    """Same as log() for the async API session."""
    entry = _build_entry(action, entity_type, entity_id, actor, before, after, notes)
    db.add(entry)
    await db.flush()
    logger.debug("Audit: %s %s/%s", action, entity_type, entity_id)
    return entry
