"""
Audit Log model and data access functions.
Records who changed reservations, billing and splits, with before/after state.
"""

import json

from database import get_db


# =============================================================================
# CREATE OPERATIONS
# =============================================================================

def create_audit_log(
    action: str,
    entity_type: str,
    entity_id: int = None,
    organization_id: int = None,
    user_id: int = None,
    changes: dict = None,
    ip_address: str = None,
    user_agent: str = None
) -> int:
    """
    Create a new audit log entry.

    Args:
        action: Action type (CREATE, UPDATE, DELETE, RECALCULATE, ...)
        entity_type: Entity type (payment, reservation, payment_split)
        entity_id: ID of the affected entity
        organization_id: Organization the entity belongs to
        user_id: Acting member (None for system actions)
        changes: Dictionary with before/after state
        ip_address: Client IP address
        user_agent: Client user agent string

    Returns:
        New audit log ID

    Example:
        create_audit_log(
            action='UPDATE',
            entity_type='payment',
            entity_id=12,
            organization_id=1,
            user_id=3,
            changes={'before': {'amount': 150.0}, 'after': {'amount': 200.0}}
        )
    """
    changes_json = None
    if changes is not None:
        changes_json = json.dumps(changes, default=str, ensure_ascii=False)

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO audit_log
        (organization_id, user_id, action, entity_type, entity_id, changes, ip_address, user_agent)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    ''', (organization_id, user_id, action, entity_type, entity_id, changes_json,
          ip_address, user_agent))
    db.commit()

    return cursor.lastrowid
