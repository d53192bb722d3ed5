"""
Payment model and data access functions.

A reservation has one or more payment rows: a single 'full' row, or a
'source' row plus one 'recipient' row per family group sharing the stay.
Once money has been received on a row its amount is locked.
"""

from database import get_db
from models.occupancy import SPLIT_ROLES
from utils.validators import sanitize_input


PAYMENT_STATUSES = ('pending', 'deferred', 'partial', 'paid')


def is_payment_locked(payment: dict) -> bool:
    """A row is locked once flagged or once any amount was received."""
    return bool(payment.get('billing_locked')) or (payment.get('amount_paid') or 0) > 0


class ReservationPayments:
    """
    All payment rows of one reservation, partitioned by lock state.
    """

    def __init__(self, rows: list):
        self.rows = rows

    def __len__(self):
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    @property
    def locked(self) -> list:
        return [row for row in self.rows if is_payment_locked(row)]

    @property
    def unlocked(self) -> list:
        return [row for row in self.rows if not is_payment_locked(row)]

    @property
    def any_locked(self) -> bool:
        return any(is_payment_locked(row) for row in self.rows)

    @property
    def ids(self) -> list:
        return [row['id'] for row in self.rows]

    def by_role(self, split_role: str) -> list:
        return [row for row in self.rows if row['split_role'] == split_role]


# =============================================================================
# READ
# =============================================================================

def get_payment_by_id(organization_id: int, payment_id: int) -> dict:
    """
    Get payment by ID.

    Returns:
        Payment dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM payments
        WHERE id = ? AND organization_id = ?
    ''', (payment_id, organization_id))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_reservation_payments(organization_id: int, reservation_id: int) -> ReservationPayments:
    """
    Get every payment row of a reservation, oldest first.

    Args:
        organization_id: Organization ID
        reservation_id: Reservation ID

    Returns:
        ReservationPayments
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM payments
        WHERE organization_id = ? AND reservation_id = ?
        ORDER BY created_at, id
    ''', (organization_id, reservation_id))
    return ReservationPayments([dict(row) for row in cursor.fetchall()])


# =============================================================================
# CREATE / UPDATE
# =============================================================================

def create_payment(
    organization_id: int,
    reservation_id: int,
    family_group: str,
    amount: float,
    split_role: str = 'full',
    status: str = 'pending',
    daily_occupancy: str = None,
    due_date: str = None,
    description: str = None,
    notes: str = None,
    created_by: int = None,
    commit: bool = True
) -> int:
    """
    Create a payment row.

    Args:
        organization_id: Organization ID
        reservation_id: Reservation the payment belongs to
        family_group: Family group billed
        amount: Amount due
        split_role: 'full', 'source' or 'recipient'
        status: Initial status
        daily_occupancy: Serialized occupancy snapshot (JSON)
        due_date: Due date (YYYY-MM-DD)
        description: Short description
        notes: Free text notes
        created_by: Member ID
        commit: Commit immediately (False when part of a larger transaction)

    Returns:
        New payment ID

    Raises:
        ValueError: On an invalid role, status or amount
    """
    if split_role not in SPLIT_ROLES:
        raise ValueError(f'Invalid split role: {split_role}')
    if status not in PAYMENT_STATUSES:
        raise ValueError(f'Invalid payment status: {status}')
    if amount is None or amount < 0:
        raise ValueError('Payment amount cannot be negative')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO payments (
            organization_id, reservation_id, family_group, split_role, amount,
            daily_occupancy, status, due_date, description, notes, created_by, updated_by
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        organization_id, reservation_id, family_group, split_role, amount,
        daily_occupancy, status, due_date,
        sanitize_input(description, 255) or None, sanitize_input(notes, 2000) or None,
        created_by, created_by
    ))
    if commit:
        db.commit()

    return cursor.lastrowid


def write_payment_billing(
    payment_id: int,
    daily_occupancy: str,
    amount: float = None,
    updated_by: int = None,
    commit: bool = True
) -> bool:
    """
    Write an occupancy snapshot, and optionally a new amount, to one row.

    Snapshot and amount go out in a single UPDATE so they never disagree.
    The amount is only replaced while the row is unlocked; a row that has
    received money keeps its amount even if this races with a payment.

    Args:
        payment_id: Payment ID
        daily_occupancy: Serialized occupancy snapshot (JSON)
        amount: New amount, or None to leave the amount untouched
        updated_by: Member ID
        commit: Commit immediately

    Returns:
        bool: True if the row exists
    """
    db = get_db()
    cursor = db.cursor()

    if amount is None:
        cursor.execute('''
            UPDATE payments
            SET daily_occupancy = ?, updated_by = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (daily_occupancy, updated_by, payment_id))
    else:
        cursor.execute('''
            UPDATE payments
            SET daily_occupancy = ?,
                amount = CASE
                    WHEN billing_locked = 0 AND amount_paid <= 0 THEN ?
                    ELSE amount
                END,
                updated_by = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (daily_occupancy, amount, updated_by, payment_id))

    if commit:
        db.commit()

    return cursor.rowcount > 0


def update_payment_fields(payment_id: int, updated_by: int = None, commit: bool = True, **kwargs) -> bool:
    """
    Update descriptive payment fields.

    Args:
        payment_id: Payment ID
        updated_by: Member ID
        commit: Commit immediately
        **kwargs: Fields to update

    Returns:
        bool: True if a row was updated
    """
    allowed_fields = ['split_role', 'status', 'due_date', 'description', 'notes']

    if 'split_role' in kwargs and kwargs['split_role'] not in SPLIT_ROLES:
        raise ValueError(f"Invalid split role: {kwargs['split_role']}")
    if 'status' in kwargs and kwargs['status'] not in PAYMENT_STATUSES:
        raise ValueError(f"Invalid payment status: {kwargs['status']}")

    updates = []
    values = []

    for field in allowed_fields:
        if field in kwargs:
            updates.append(f'{field} = ?')
            values.append(kwargs[field])

    if not updates:
        return False

    updates.extend(['updated_by = ?', 'updated_at = CURRENT_TIMESTAMP'])
    values.extend([updated_by, payment_id])

    db = get_db()
    cursor = db.cursor()
    cursor.execute(f'UPDATE payments SET {", ".join(updates)} WHERE id = ?', values)
    if commit:
        db.commit()

    return cursor.rowcount > 0


def record_payment_received(
    organization_id: int,
    payment_id: int,
    amount_paid: float,
    updated_by: int = None
) -> dict:
    """
    Record the total amount received on a payment.

    Sets the status ('partial' or 'paid') and locks billing as soon as
    anything has been received.

    Args:
        organization_id: Organization ID
        payment_id: Payment ID
        amount_paid: Total received so far
        updated_by: Member ID

    Returns:
        Updated payment dict, or None if not found

    Raises:
        ValueError: If amount_paid is negative
    """
    if amount_paid is None or amount_paid < 0:
        raise ValueError('Amount paid cannot be negative')

    payment = get_payment_by_id(organization_id, payment_id)
    if not payment:
        return None

    if amount_paid == 0:
        status = payment['status'] if payment['status'] in ('pending', 'deferred') else 'pending'
    elif amount_paid >= payment['amount']:
        status = 'paid'
    else:
        status = 'partial'

    db = get_db()
    db.execute('''
        UPDATE payments
        SET amount_paid = ?,
            status = ?,
            billing_locked = CASE WHEN ? > 0 THEN 1 ELSE billing_locked END,
            updated_by = ?,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND organization_id = ?
    ''', (amount_paid, status, amount_paid, updated_by, payment_id, organization_id))
    db.commit()

    return get_payment_by_id(organization_id, payment_id)


# =============================================================================
# DELETE
# =============================================================================

def delete_unpaid_payment(payment_id: int, commit: bool = True) -> bool:
    """
    Delete a payment row that has received nothing.

    Returns:
        bool: True if deleted
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        DELETE FROM payments
        WHERE id = ? AND amount_paid = 0 AND billing_locked = 0
    ''', (payment_id,))
    if commit:
        db.commit()

    return cursor.rowcount > 0
