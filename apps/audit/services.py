"""
Audit sink.

Audit is best effort: a failure to record an event is logged and never
propagates to the operation being audited.
"""
import logging
from functools import partial

from django.db import transaction

from .models import AuditLog

logger = logging.getLogger(__name__)


def record_event(*, user=None, entity_type, entity_id, action_type, details=None):
    """Write one AuditLog row. Returns it, or None if the write failed."""
    try:
        return AuditLog.objects.create(
            user=user,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action_type=action_type,
            details=details or {},
        )
    except Exception:
        logger.exception(
            "Failed to record audit event %s %s#%s", action_type, entity_type, entity_id
        )
        return None


def dispatch_after_commit(**event):
    """Record ``event`` once the surrounding transaction commits."""
    transaction.on_commit(partial(record_event, **event), robust=True)
