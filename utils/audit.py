"""
Audit logging utility functions.
Records billing and reservation changes made through the core operations.
"""

import logging

from flask import has_request_context, request

logger = logging.getLogger(__name__)


def log_audit(
    action: str,
    entity_type: str,
    entity_id: int = None,
    organization_id: int = None,
    user_id: int = None,
    before: dict = None,
    after: dict = None
) -> int:
    """
    Log an audit entry.

    The acting member is passed in explicitly by the operation; request
    details (IP, user agent) are captured when a request is active.

    Args:
        action: Action type (CREATE, UPDATE, RECALCULATE, ...)
        entity_type: Entity type (payment, reservation, payment_split)
        entity_id: ID of the affected entity
        organization_id: Organization the entity belongs to
        user_id: Acting member ID (None for system actions)
        before: Entity state before the change
        after: Entity state after the change

    Returns:
        New audit log ID, or None if logging failed
    """
    try:
        from models.audit_log import create_audit_log

        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
            if ip_address and ',' in ip_address:
                ip_address = ip_address.split(',')[0].strip()
            user_agent = request.headers.get('User-Agent', '')[:255]

        changes = None
        if before is not None or after is not None:
            changes = {'before': before, 'after': after}

        return create_audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            organization_id=organization_id,
            user_id=user_id,
            changes=changes,
            ip_address=ip_address,
            user_agent=user_agent
        )

    except Exception as e:
        # Audit logging should never fail the main operation
        logger.error(f"Failed to log audit entry: {e}", exc_info=True)
        return None


def log_create(entity_type: str, entity_id: int, organization_id: int,
               user_id: int = None, data: dict = None) -> int:
    """Log a CREATE action."""
    return log_audit('CREATE', entity_type, entity_id, organization_id, user_id, after=data)


def log_update(entity_type: str, entity_id: int, organization_id: int,
               user_id: int = None, before: dict = None, after: dict = None) -> int:
    """Log an UPDATE action with before/after state."""
    return log_audit('UPDATE', entity_type, entity_id, organization_id, user_id,
                     before=before, after=after)


__all__ = [
    'log_audit',
    'log_create',
    'log_update',
]
