"""
Reservation conflict detection.
Handles date overlap checks with the noon turnover policy, booking
validation and alternative date suggestions.

Stays are half-open ranges [start_date, end_date): a group checking out
at noon and another checking in the same afternoon do not conflict.
"""

import logging
import sqlite3
from dataclasses import dataclass, field

from flask import current_app

from database import get_db
from utils.date_ranges import parse_date, to_iso, nights_between, shift_range, is_same_day
from utils.datetime_helpers import get_today


logger = logging.getLogger(__name__)

STATUS_OK = 'ok'
STATUS_CHECK_FAILED = 'check_failed'

CHECK_FAILED_WARNING = 'Error checking for conflicts'
NO_ORGANIZATION_WARNING = 'No organization found'


@dataclass
class ConflictCheckResult:
    """
    Outcome of a conflict lookup.

    A 'check_failed' result carries no conflicts: the store could not be
    read, and callers decide whether to let the booking through.
    """

    conflicts: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    status: str = STATUS_OK
    failure_reason: str = None

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def check_failed(self) -> bool:
        return self.status == STATUS_CHECK_FAILED

    @classmethod
    def failed(cls, reason: str, warning: str = CHECK_FAILED_WARNING) -> 'ConflictCheckResult':
        return cls(warnings=[warning], status=STATUS_CHECK_FAILED, failure_reason=reason)

    def to_dict(self) -> dict:
        return {
            'has_conflicts': self.has_conflicts,
            'conflicts': self.conflicts,
            'warnings': self.warnings,
            'status': self.status,
            'failure_reason': self.failure_reason,
        }


# =============================================================================
# OVERLAP
# =============================================================================

def check_overlap(start1, end1, start2, end2) -> bool:
    """
    Check whether two stays overlap.

    Checkout and check-in on the same day is allowed (noon turnover).

    Args:
        start1, end1: First stay (date or 'YYYY-MM-DD')
        start2, end2: Second stay

    Returns:
        bool: True if the stays share at least one night
    """
    s1, e1 = parse_date(start1), parse_date(end1)
    s2, e2 = parse_date(start2), parse_date(end2)

    if e1 == s2 or e2 == s1:
        return False

    return s1 < e2 and e1 > s2


def _is_turnover(reservation: dict, start, end) -> bool:
    return (is_same_day(reservation['end_date'], start)
            or is_same_day(reservation['start_date'], end))


def _get_confirmed_reservations(
    organization_id: int,
    property_name: str = None,
    exclude_reservation_id: int = None
) -> list:
    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT id, start_date, end_date, family_group, property_name, status
        FROM reservations
        WHERE organization_id = ?
          AND status = 'confirmed'
    '''
    params = [organization_id]

    if exclude_reservation_id:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    if property_name:
        query += ' AND property_name = ?'
        params.append(property_name)

    query += ' ORDER BY start_date'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# CONFLICT DETECTION
# =============================================================================

def detect_reservation_conflicts(
    organization_id: int,
    start_date,
    end_date,
    property_name: str = None,
    exclude_reservation_id: int = None
) -> ConflictCheckResult:
    """
    Find confirmed reservations that overlap a date range.

    Args:
        organization_id: Organization to search in
        start_date: Check-in date
        end_date: Check-out date (exclusive)
        property_name: Restrict to one property (None = all)
        exclude_reservation_id: Reservation being edited

    Returns:
        ConflictCheckResult. On a store error the result is 'check_failed'
        with no conflicts and a warning, never an exception.
    """
    if not organization_id:
        return ConflictCheckResult.failed('missing organization', NO_ORGANIZATION_WARNING)

    start = parse_date(start_date)
    end = parse_date(end_date)

    try:
        existing = _get_confirmed_reservations(
            organization_id, property_name, exclude_reservation_id
        )
    except sqlite3.Error as e:
        logger.error(
            f"Error detecting reservation conflicts for organization {organization_id}: {e}",
            exc_info=True
        )
        return ConflictCheckResult.failed(str(e))

    conflicts = [
        res for res in existing
        if check_overlap(start, end, res['start_date'], res['end_date'])
    ]

    warnings = [
        f"Same-day transition with {res['family_group']} (check-in/out at noon)"
        for res in existing
        if _is_turnover(res, start, end)
    ]

    return ConflictCheckResult(conflicts=conflicts, warnings=warnings)


def check_property_availability(
    organization_id: int,
    start_date,
    end_date,
    property_name: str = None,
    exclude_reservation_id: int = None
) -> dict:
    """
    Check whether a property is free for a date range.

    Returns:
        dict: {'available': bool, 'conflicts': list, 'check_failed': bool}
    """
    result = detect_reservation_conflicts(
        organization_id, start_date, end_date, property_name, exclude_reservation_id
    )
    return {
        'available': not result.has_conflicts,
        'conflicts': result.conflicts,
        'check_failed': result.check_failed,
    }


# =============================================================================
# VALIDATION
# =============================================================================

def validate_reservation_dates(
    organization_id: int,
    start_date,
    end_date,
    family_group: str,
    property_name: str = None,
    exclude_reservation_id: int = None,
    is_edit_mode: bool = False,
    admin_override: bool = False,
    today=None
) -> dict:
    """
    Validate a reservation's dates before it is saved.

    Rules:
    - Check-out must be after check-in
    - New bookings cannot start in the past; edits only need a check-out
      that is not in the past. Admin override skips both.
    - Overlaps with confirmed reservations are errors; same-day
      transitions are warnings

    Args:
        organization_id: Organization ID
        start_date: Check-in date
        end_date: Check-out date
        family_group: Group making the booking
        property_name: Property (None = all)
        exclude_reservation_id: Reservation being edited
        is_edit_mode: True when editing an existing reservation
        admin_override: Skip past-date rules
        today: Reference date (defaults to today in the configured timezone)

    Returns:
        dict: {'is_valid', 'errors', 'warnings', 'check_failed'}
    """
    errors = []
    warnings = []

    try:
        start = parse_date(start_date)
        end = parse_date(end_date)
    except ValueError:
        return {
            'is_valid': False,
            'errors': ['Check-in and check-out must be valid dates'],
            'warnings': [],
            'check_failed': False,
        }

    if start >= end:
        errors.append('Check-out date must be after check-in date')

    if not admin_override:
        today = parse_date(today) if today is not None else get_today()
        if is_edit_mode:
            if end < today:
                errors.append('Check-out date cannot be in the past')
        elif start < today:
            errors.append('Cannot make reservations for past dates')

    result = detect_reservation_conflicts(
        organization_id, start, end, property_name, exclude_reservation_id
    )

    for conflict in result.conflicts:
        errors.append(
            f"Overlaps with existing {conflict['family_group']} reservation "
            f"({conflict['start_date']} to {conflict['end_date']})"
        )

    warnings.extend(result.warnings)

    if result.check_failed:
        logger.warning(
            f"Conflict check failed while validating {family_group} booking "
            f"{to_iso(start)} to {to_iso(end)}; allowing"
        )

    return {
        'is_valid': len(errors) == 0,
        'errors': errors,
        'warnings': warnings,
        'check_failed': result.check_failed,
    }


# =============================================================================
# ALTERNATIVES
# =============================================================================

def suggest_alternative_dates(
    organization_id: int,
    preferred_start,
    preferred_end,
    property_name: str = None,
    days_to_search: int = None
) -> list:
    """
    Suggest free windows of the same length near a requested stay.

    Tries 1 day earlier, 1 day later, 2 days earlier, ... up to
    days_to_search, and stops once enough windows are found. Results keep
    that earlier/later order.

    Args:
        organization_id: Organization ID
        preferred_start: Requested check-in
        preferred_end: Requested check-out
        property_name: Property (None = all)
        days_to_search: Maximum offset in days (default from config)

    Returns:
        list of {'start_date': 'YYYY-MM-DD', 'end_date': 'YYYY-MM-DD'}
    """
    if days_to_search is None:
        days_to_search = current_app.config.get('ALTERNATIVE_SEARCH_DAYS', 14)
    max_alternatives = current_app.config.get('MAX_ALTERNATIVES', 5)

    start = parse_date(preferred_start)
    duration = nights_between(start, preferred_end)

    alternatives = []
    for offset in range(1, days_to_search + 1):
        for days in (-offset, offset):
            window_start, window_end = shift_range(start, days, duration)
            availability = check_property_availability(
                organization_id, window_start, window_end, property_name
            )
            if availability['available'] and not availability['check_failed']:
                alternatives.append({
                    'start_date': to_iso(window_start),
                    'end_date': to_iso(window_end),
                })
                if len(alternatives) >= max_alternatives:
                    return alternatives

    return alternatives
