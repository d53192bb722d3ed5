"""
Daily occupancy and billing API routes.
"""

from flask import request
from flask_login import login_required, current_user

from models.reservation import get_reservation_by_id
from utils.api_response import api_success, api_error, api_error_from_result
from blueprints.cabin.services.occupancy_billing_service import (
    update_occupancy,
    recalculate_billing,
    fetch_occupancy_data,
    get_billing_lock_status,
)


def _occupancy_payload(data: dict):
    """Daily occupancy list from a request body ('daily_occupancy' or 'entries')."""
    if 'daily_occupancy' in data:
        return data['daily_occupancy']
    return data.get('entries')


def register_routes(bp):
    """Register occupancy API routes on the blueprint."""

    @bp.route('/reservations/<int:reservation_id>/occupancy', methods=['GET'])
    @login_required
    def occupancy_get(reservation_id):
        """Get a reservation's daily occupancy and billing lock state."""
        organization_id = current_user.organization_id
        if not get_reservation_by_id(organization_id, reservation_id):
            return api_error('Reservation not found', status=404, error_code='not_found')

        entries = fetch_occupancy_data(organization_id, reservation_id)
        return api_success(data={
            'reservation_id': reservation_id,
            'daily_occupancy': [entry.to_dict() for entry in entries],
            'billing_locked': get_billing_lock_status(organization_id, reservation_id),
        })

    @bp.route('/reservations/<int:reservation_id>/occupancy', methods=['PUT'])
    @login_required
    def occupancy_update(reservation_id):
        """
        Save daily guest counts and re-bill unlocked payments.

        Request JSON:
        {
            "daily_occupancy": [
                {"date": "2024-08-01", "sourceGuests": 2, "recipientGuests": 1},
                ...
            ],
            "skip_billing_recalc": false
        }
        """
        data = request.get_json(silent=True) or {}
        entries = _occupancy_payload(data)
        if entries is None:
            return api_error('daily_occupancy is required', error_code='invalid_occupancy')

        result = update_occupancy(
            current_user.organization_id,
            reservation_id,
            entries,
            skip_billing_recalc=bool(data.get('skip_billing_recalc')),
            show_notice=data.get('show_notice', True) is not False,
            actor_id=current_user.id
        )
        if not result['success']:
            return api_error_from_result(result)

        return api_success(data=result, message=result['notice'])

    @bp.route('/reservations/<int:reservation_id>/billing/recalculate', methods=['POST'])
    @login_required
    def billing_recalculate(reservation_id):
        """Recalculate charges at current rates; refused once billing is locked."""
        data = request.get_json(silent=True) or {}
        entries = _occupancy_payload(data)
        if entries is None:
            entries = fetch_occupancy_data(current_user.organization_id, reservation_id)

        result = recalculate_billing(
            current_user.organization_id,
            reservation_id,
            entries,
            actor_id=current_user.id
        )
        if not result['success']:
            return api_error_from_result(result, billing_locked=result['billing_locked'])

        return api_success(data=result, message=result['notice'])
