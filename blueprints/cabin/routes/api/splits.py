"""
Cost split API routes.
"""

from flask import request
from flask_login import login_required, current_user

from models.reservation import get_reservation_by_id
from utils.api_response import api_success, api_error, api_error_from_result
from blueprints.cabin.services.split_service import (
    create_split_payments,
    update_split_occupancy,
    get_split_details,
)


def register_routes(bp):
    """Register split API routes on the blueprint."""

    @bp.route('/reservations/<int:reservation_id>/splits', methods=['POST'])
    @login_required
    def splits_create(reservation_id):
        """
        Split a stay's cost with other family groups.

        Request JSON:
        {
            "daily_occupancy": [{"date": "2024-08-01", "sourceGuests": 2}, ...],
            "recipients": [
                {
                    "family_group": "Jones",
                    "member_id": 7,
                    "display_name": "Pat Jones",
                    "daily_occupancy": [{"date": "2024-08-01", "guests": 2}, ...]
                }
            ]
        }
        """
        organization_id = current_user.organization_id
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return api_error('Reservation not found', status=404, error_code='not_found')
        if not current_user.is_manager and reservation['family_group'] != current_user.family_group:
            return api_error('Only the booking family group can split this stay', status=403,
                             error_code='permission_denied')

        data = request.get_json(silent=True) or {}
        recipients = data.get('recipients')
        if not isinstance(recipients, list) or not recipients:
            return api_error('recipients must be a non-empty list', error_code='invalid_occupancy')
        if not all(isinstance(r, dict) for r in recipients):
            return api_error('Each recipient must be an object', error_code='invalid_occupancy')

        result = create_split_payments(
            organization_id,
            reservation_id,
            source_family_group=reservation['family_group'],
            recipients=recipients,
            entries=data.get('daily_occupancy') or [],
            actor_id=current_user.id,
            description=data.get('description')
        )
        if not result['success']:
            return api_error_from_result(result)

        return api_success(data=result, message='Cost split created', status=201)

    @bp.route('/splits/<int:split_id>', methods=['GET'])
    @login_required
    def splits_detail(split_id):
        """Get a split with its nightly breakdown and payments."""
        details = get_split_details(current_user.organization_id, split_id)
        if not details:
            return api_error('Split not found', status=404, error_code='not_found')
        return api_success(data=details)

    @bp.route('/splits/<int:split_id>', methods=['PUT'])
    @login_required
    def splits_update(split_id):
        """
        Edit a split's nightly breakdown.

        Request JSON:
        {"daily_occupancy": [{"date": "...", "sourceGuests": 2, "recipientGuests": 1}, ...]}
        """
        data = request.get_json(silent=True) or {}
        if data.get('daily_occupancy') is None:
            return api_error('daily_occupancy is required', error_code='invalid_occupancy')

        result = update_split_occupancy(
            current_user.organization_id,
            split_id,
            data['daily_occupancy'],
            actor_id=current_user.id
        )
        if not result['success']:
            return api_error_from_result(result)

        return api_success(data=result, message='Split occupancy updated')
