"""
Payment split records.

A split links the source family group's payment to the payment billed to
a recipient group for the guests they brought. The nightly breakdown the
recipient is billed for is kept on the split as JSON.
"""

from database import get_db


NOTIFICATION_STATUSES = ('pending', 'sent', 'failed')


def create_payment_split(
    organization_id: int,
    source_payment_id: int,
    split_payment_id: int,
    source_family_group: str,
    split_to_family_group: str,
    daily_occupancy_split: str,
    source_member_id: int = None,
    split_to_member_id: int = None,
    created_by: int = None,
    commit: bool = True
) -> int:
    """
    Create a split record.

    Args:
        organization_id: Organization ID
        source_payment_id: Payment of the group that booked
        split_payment_id: Payment billed to the recipient group
        source_family_group: Booking group
        split_to_family_group: Recipient group
        daily_occupancy_split: Serialized occupancy entries (JSON)
        source_member_id: Member who made the split
        split_to_member_id: Recipient group contact
        created_by: Member ID
        commit: Commit immediately

    Returns:
        New split ID
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO payment_splits (
            organization_id, source_payment_id, split_payment_id,
            source_family_group, source_member_id,
            split_to_family_group, split_to_member_id,
            daily_occupancy_split, created_by
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        organization_id, source_payment_id, split_payment_id,
        source_family_group, source_member_id,
        split_to_family_group, split_to_member_id,
        daily_occupancy_split, created_by
    ))
    if commit:
        db.commit()

    return cursor.lastrowid


def get_split_by_id(organization_id: int, split_id: int) -> dict:
    """
    Get a split with both of its payments.

    Returns:
        Split dict with 'source_payment' and 'split_payment' dicts,
        or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM payment_splits
        WHERE id = ? AND organization_id = ?
    ''', (split_id, organization_id))
    row = cursor.fetchone()
    if not row:
        return None

    split = dict(row)

    cursor.execute('SELECT * FROM payments WHERE id IN (?, ?)',
                   (split['source_payment_id'], split['split_payment_id']))
    payments = {p['id']: dict(p) for p in cursor.fetchall()}

    split['source_payment'] = payments.get(split['source_payment_id'])
    split['split_payment'] = payments.get(split['split_payment_id'])
    return split


def get_splits_for_source_payment(source_payment_id: int) -> list:
    """List splits made from a source payment, oldest first."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM payment_splits
        WHERE source_payment_id = ?
        ORDER BY created_at, id
    ''', (source_payment_id,))
    return [dict(row) for row in cursor.fetchall()]


def update_split_daily_occupancy(split_id: int, daily_occupancy_split: str, commit: bool = True) -> bool:
    """Replace the nightly breakdown stored on a split."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE payment_splits
        SET daily_occupancy_split = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (daily_occupancy_split, split_id))
    if commit:
        db.commit()

    return cursor.rowcount > 0


def set_notification_status(split_id: int, status: str) -> bool:
    """
    Record whether the recipient was notified.

    Raises:
        ValueError: On an unknown status
    """
    if status not in NOTIFICATION_STATUSES:
        raise ValueError(f'Invalid notification status: {status}')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE payment_splits
        SET notification_status = ?, updated_at = CURRENT_TIMESTAMP
        WHERE id = ?
    ''', (status, split_id))
    db.commit()

    return cursor.rowcount > 0
