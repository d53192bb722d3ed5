"""
Reservation CRUD operations.
Handles creating, reading, updating and cancelling cabin reservations.
Date validation and conflict checks live in reservation_conflicts.py and
are run by callers before writing.
"""

from database import get_db
from utils.date_ranges import parse_date, to_iso
from utils.validators import validate_non_negative_int, sanitize_input


RESERVATION_STATUSES = ('pending', 'confirmed', 'cancelled')


# =============================================================================
# CREATE
# =============================================================================

def create_reservation(
    organization_id: int,
    family_group: str,
    start_date: str,
    end_date: str,
    guest_count: int = 1,
    property_name: str = None,
    status: str = 'confirmed',
    notes: str = None,
    created_by: int = None,
    time_period_number: int = None,
    allocated_start_date: str = None,
    allocated_end_date: str = None,
    total_cost: float = 0.0
) -> int:
    """
    Create a reservation.

    Args:
        organization_id: Owning organization
        family_group: Family group holding the stay
        start_date: Check-in date (YYYY-MM-DD)
        end_date: Check-out date (YYYY-MM-DD, exclusive)
        guest_count: Expected guests
        property_name: Property (None = the cabin)
        status: 'pending', 'confirmed' or 'cancelled'
        notes: Free text notes
        created_by: Member ID creating the reservation
        time_period_number: Rotation period the stay was allocated from
        allocated_start_date: Start of the allocated period
        allocated_end_date: End of the allocated period
        total_cost: Estimated cost

    Returns:
        New reservation ID

    Raises:
        ValueError: If fields are invalid
    """
    if not family_group:
        raise ValueError('Family group is required')
    if status not in RESERVATION_STATUSES:
        raise ValueError(f'Invalid status: {status}')

    start = parse_date(start_date)
    end = parse_date(end_date)
    if end <= start:
        raise ValueError('Check-out date must be after check-in date')

    valid, guest_count, err = validate_non_negative_int(guest_count, 'Guest count')
    if not valid:
        raise ValueError(err)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('''
            INSERT INTO reservations (
                organization_id, family_group, property_name, start_date, end_date,
                guest_count, status, time_period_number,
                allocated_start_date, allocated_end_date, total_cost, notes, created_by
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            organization_id, family_group, property_name, to_iso(start), to_iso(end),
            guest_count, status, time_period_number,
            allocated_start_date, allocated_end_date, total_cost,
            sanitize_input(notes, 2000) or None, created_by
        ))
        db.commit()
        return cursor.lastrowid

    except Exception:
        db.rollback()
        raise


# =============================================================================
# READ
# =============================================================================

def get_reservation_by_id(organization_id: int, reservation_id: int) -> dict:
    """
    Get a reservation of an organization.

    Returns:
        Reservation dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservations
        WHERE id = ? AND organization_id = ?
    ''', (reservation_id, organization_id))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_reservations(
    organization_id: int,
    status: str = None,
    from_date: str = None,
    to_date: str = None,
    family_group: str = None
) -> list:
    """
    List reservations, optionally filtered.

    Args:
        organization_id: Organization ID
        status: Only this status
        from_date: Only stays ending after this date
        to_date: Only stays starting before this date
        family_group: Only this family group

    Returns:
        List of reservation dicts ordered by start date
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM reservations WHERE organization_id = ?'
    params = [organization_id]

    if status:
        query += ' AND status = ?'
        params.append(status)

    if from_date:
        query += ' AND end_date > ?'
        params.append(to_iso(from_date))

    if to_date:
        query += ' AND start_date < ?'
        params.append(to_iso(to_date))

    if family_group:
        query += ' AND family_group = ?'
        params.append(family_group)

    query += ' ORDER BY start_date, id'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# UPDATE
# =============================================================================

def update_reservation(organization_id: int, reservation_id: int, **kwargs) -> bool:
    """
    Update reservation fields.

    Args:
        organization_id: Organization ID
        reservation_id: Reservation ID
        **kwargs: Fields to update

    Returns:
        bool: True if a row was updated

    Raises:
        ValueError: If the resulting date range is inverted
    """
    allowed_fields = [
        'family_group', 'property_name', 'start_date', 'end_date',
        'guest_count', 'status', 'notes', 'total_cost', 'time_period_number',
        'allocated_start_date', 'allocated_end_date'
    ]

    if 'status' in kwargs and kwargs['status'] not in RESERVATION_STATUSES:
        raise ValueError(f"Invalid status: {kwargs['status']}")

    if 'start_date' in kwargs or 'end_date' in kwargs:
        current = get_reservation_by_id(organization_id, reservation_id)
        if not current:
            return False
        start = parse_date(kwargs.get('start_date') or current['start_date'])
        end = parse_date(kwargs.get('end_date') or current['end_date'])
        if end <= start:
            raise ValueError('Check-out date must be after check-in date')
        kwargs['start_date'] = to_iso(start)
        kwargs['end_date'] = to_iso(end)

    if 'guest_count' in kwargs:
        valid, kwargs['guest_count'], err = validate_non_negative_int(
            kwargs['guest_count'], 'Guest count'
        )
        if not valid:
            raise ValueError(err)

    updates = []
    values = []

    for field_name in allowed_fields:
        if field_name in kwargs:
            updates.append(f'{field_name} = ?')
            values.append(kwargs[field_name])

    if not updates:
        return False

    updates.append('updated_at = CURRENT_TIMESTAMP')
    values.extend([reservation_id, organization_id])

    query = f'UPDATE reservations SET {", ".join(updates)} WHERE id = ? AND organization_id = ?'

    db = get_db()
    cursor = db.cursor()
    cursor.execute(query, values)
    db.commit()

    return cursor.rowcount > 0


def cancel_reservation(organization_id: int, reservation_id: int) -> bool:
    """
    Cancel a reservation. The row is kept; it simply stops blocking dates.

    Returns:
        bool: True if the reservation was cancelled
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        UPDATE reservations
        SET status = 'cancelled', updated_at = CURRENT_TIMESTAMP
        WHERE id = ? AND organization_id = ? AND status != 'cancelled'
    ''', (reservation_id, organization_id))
    db.commit()

    return cursor.rowcount > 0
