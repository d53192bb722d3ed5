"""
Check-in session data access.

Sessions record the guests present each day of a stay in
checklist_responses['dailyOccupancy'] ({'YYYY-MM-DD': guests}). Payment
snapshots and sessions are kept in step by the occupancy service.
"""

import json

from database import get_db
from utils.date_ranges import to_iso


def _load_responses(raw) -> dict:
    if not raw:
        return {}
    responses = json.loads(raw) if isinstance(raw, str) else raw
    return responses if isinstance(responses, dict) else {}


def get_daily_occupancy_from_sessions(organization_id: int, start_date, end_date) -> dict:
    """
    Collect guest counts recorded by sessions dated within [start_date, end_date].

    Later sessions win when two report the same day.

    Returns:
        dict: {'YYYY-MM-DD': guests}
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT checklist_responses FROM checkin_sessions
        WHERE organization_id = ?
          AND check_date >= ? AND check_date <= ?
        ORDER BY check_date, id
    ''', (organization_id, to_iso(start_date), to_iso(end_date)))

    occupancy = {}
    for row in cursor.fetchall():
        daily = _load_responses(row['checklist_responses']).get('dailyOccupancy') or {}
        occupancy.update(daily)

    return occupancy


def mirror_daily_occupancy(organization_id: int, guests_by_date: dict) -> int:
    """
    Copy per-day guest counts into the sessions held on those days.

    Only existing sessions are touched; no session is created.

    Args:
        organization_id: Organization ID
        guests_by_date: {'YYYY-MM-DD': guests}

    Returns:
        Number of sessions updated
    """
    if not guests_by_date:
        return 0

    db = get_db()
    cursor = db.cursor()

    placeholders = ','.join('?' * len(guests_by_date))
    cursor.execute(f'''
        SELECT id, check_date, checklist_responses FROM checkin_sessions
        WHERE organization_id = ? AND check_date IN ({placeholders})
    ''', [organization_id] + list(guests_by_date.keys()))
    sessions = cursor.fetchall()

    for session in sessions:
        responses = _load_responses(session['checklist_responses'])
        daily = dict(responses.get('dailyOccupancy') or {})
        daily[session['check_date']] = guests_by_date[session['check_date']]
        responses['dailyOccupancy'] = daily

        cursor.execute('''
            UPDATE checkin_sessions
            SET checklist_responses = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (json.dumps(responses), session['id']))

    db.commit()
    return len(sessions)
