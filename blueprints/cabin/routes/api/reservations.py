"""
Reservation API routes.
Conflict checks, date validation, alternative dates and booking CRUD.
"""

import sqlite3

from flask import current_app, request
from flask_login import login_required, current_user

from models.reservation import (
    create_reservation,
    get_reservation_by_id,
    update_reservation,
    cancel_reservation,
    detect_reservation_conflicts,
    validate_reservation_dates,
    suggest_alternative_dates,
)
from utils.api_response import api_success, api_error
from utils.audit import log_create, log_update
from utils.validators import (
    validate_date_string,
    validate_non_negative_int,
    validate_positive_id,
    sanitize_input,
)
from blueprints.cabin.services.notification_service import (
    dispatch_notification,
    RESERVATION_CONFIRMED,
    RESERVATION_CANCELLED,
)


def _read_date_range(data: dict, required: bool = True) -> tuple:
    """
    Read start_date/end_date from a request body.

    Returns:
        Tuple of (start_date, end_date, error_message)
    """
    valid, start_date, err = validate_date_string(data.get('start_date'), 'Check-in date', required)
    if not valid:
        return None, None, err
    valid, end_date, err = validate_date_string(data.get('end_date'), 'Check-out date', required)
    if not valid:
        return None, None, err
    return start_date, end_date, ''


def _validation_error(validation: dict) -> tuple:
    """400 for bad dates, 409 when the dates collide with another booking."""
    overlaps = any(e.startswith('Overlaps with existing') for e in validation['errors'])
    return api_error(
        validation['errors'][0],
        status=409 if overlaps else 400,
        error_code='conflict' if overlaps else 'validation_failed',
        errors=validation['errors'],
        warnings=validation['warnings']
    )


def _can_manage_group(family_group: str) -> bool:
    return current_user.is_manager or family_group == current_user.family_group


def register_routes(bp):
    """Register reservation API routes on the blueprint."""

    # ============================================================================
    # CONFLICT CHECKS
    # ============================================================================

    @bp.route('/reservations/check-conflicts', methods=['POST'])
    @login_required
    def reservations_check_conflicts():
        """
        Check a date range against confirmed reservations.

        Request JSON:
        {
            "start_date": "2024-07-10",
            "end_date": "2024-07-15",
            "property_name": "Main Cabin",     (optional)
            "exclude_reservation_id": 12       (optional)
        }
        """
        data = request.get_json(silent=True) or {}

        start_date, end_date, err = _read_date_range(data)
        if err:
            return api_error(err, error_code='validation_failed')

        valid, exclude_id, err = validate_positive_id(
            data.get('exclude_reservation_id'), 'exclude_reservation_id'
        )
        if not valid:
            return api_error(err, error_code='validation_failed')

        result = detect_reservation_conflicts(
            current_user.organization_id,
            start_date,
            end_date,
            property_name=data.get('property_name'),
            exclude_reservation_id=exclude_id
        )
        return api_success(data=result.to_dict())

    @bp.route('/reservations/validate', methods=['POST'])
    @login_required
    def reservations_validate():
        """
        Validate reservation dates without saving.

        Request JSON:
        {
            "start_date": "2024-07-10",
            "end_date": "2024-07-15",
            "family_group": "Smith",          (optional, defaults to caller's group)
            "property_name": null,
            "exclude_reservation_id": null,
            "is_edit_mode": false,
            "admin_override": false           (honored for admins/calendar keepers)
        }
        """
        data = request.get_json(silent=True) or {}

        start_date, end_date, err = _read_date_range(data)
        if err:
            return api_error(err, error_code='validation_failed')

        valid, exclude_id, err = validate_positive_id(
            data.get('exclude_reservation_id'), 'exclude_reservation_id'
        )
        if not valid:
            return api_error(err, error_code='validation_failed')

        validation = validate_reservation_dates(
            current_user.organization_id,
            start_date,
            end_date,
            family_group=data.get('family_group') or current_user.family_group,
            property_name=data.get('property_name'),
            exclude_reservation_id=exclude_id,
            is_edit_mode=bool(data.get('is_edit_mode')),
            admin_override=bool(data.get('admin_override')) and current_user.is_manager
        )
        return api_success(data=validation)

    @bp.route('/reservations/alternatives', methods=['POST'])
    @login_required
    def reservations_alternatives():
        """
        Suggest free windows of the same length near the requested stay.

        Request JSON:
        {"start_date": "...", "end_date": "...", "property_name": null, "days_to_search": 14}
        """
        data = request.get_json(silent=True) or {}

        start_date, end_date, err = _read_date_range(data)
        if err:
            return api_error(err, error_code='validation_failed')

        days_to_search = None
        if data.get('days_to_search') is not None:
            valid, days_to_search, err = validate_non_negative_int(
                data['days_to_search'], 'days_to_search'
            )
            if not valid:
                return api_error(err, error_code='validation_failed')
            days_to_search = min(days_to_search, 60)

        alternatives = suggest_alternative_dates(
            current_user.organization_id,
            start_date,
            end_date,
            property_name=data.get('property_name'),
            days_to_search=days_to_search
        )
        return api_success(data={'alternatives': alternatives})

    # ============================================================================
    # BOOKING CRUD
    # ============================================================================

    @bp.route('/reservations', methods=['POST'])
    @login_required
    def reservations_create():
        """
        Create a confirmed reservation after validating its dates.

        Request JSON:
        {
            "start_date": "2024-07-10",
            "end_date": "2024-07-15",
            "family_group": "Smith",     (optional, defaults to caller's group)
            "guest_count": 4,
            "property_name": null,
            "notes": "",
            "admin_override": false
        }
        """
        data = request.get_json(silent=True) or {}

        start_date, end_date, err = _read_date_range(data)
        if err:
            return api_error(err, error_code='validation_failed')

        family_group = sanitize_input(data.get('family_group'), 100) or current_user.family_group
        if not family_group:
            return api_error('Family group is required', error_code='validation_failed')
        if not _can_manage_group(family_group):
            return api_error('You can only book for your own family group', status=403,
                             error_code='permission_denied')

        valid, guest_count, err = validate_non_negative_int(data.get('guest_count', 1), 'Guest count')
        if not valid:
            return api_error(err, error_code='validation_failed')

        validation = validate_reservation_dates(
            current_user.organization_id,
            start_date,
            end_date,
            family_group=family_group,
            property_name=data.get('property_name'),
            admin_override=bool(data.get('admin_override')) and current_user.is_manager
        )
        if not validation['is_valid']:
            return _validation_error(validation)

        try:
            reservation_id = create_reservation(
                organization_id=current_user.organization_id,
                family_group=family_group,
                start_date=start_date,
                end_date=end_date,
                guest_count=guest_count,
                property_name=data.get('property_name'),
                notes=data.get('notes'),
                created_by=current_user.id
            )
        except ValueError as e:
            return api_error(str(e), error_code='validation_failed')
        except sqlite3.Error as e:
            current_app.logger.error(f'Error creating reservation: {e}', exc_info=True)
            return api_error('Could not save reservation', status=503, error_code='store_error')

        reservation = get_reservation_by_id(current_user.organization_id, reservation_id)
        log_create('reservation', reservation_id, current_user.organization_id, current_user.id,
                   data={'start_date': start_date, 'end_date': end_date, 'family_group': family_group})

        dispatch_notification(RESERVATION_CONFIRMED, current_user.organization_id, {
            'reservationId': reservation_id,
            'familyGroup': family_group,
            'startDate': reservation['start_date'],
            'endDate': reservation['end_date'],
        })

        return api_success(
            data=reservation,
            message='Reservation created',
            warning='; '.join(validation['warnings']) or None,
            status=201,
            reservation_id=reservation_id
        )

    @bp.route('/reservations/<int:reservation_id>', methods=['PUT'])
    @login_required
    def reservations_update(reservation_id):
        """Update a reservation; new dates are validated in edit mode."""
        organization_id = current_user.organization_id
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return api_error('Reservation not found', status=404, error_code='not_found')
        if not _can_manage_group(reservation['family_group']):
            return api_error('You can only edit your own family group reservations', status=403,
                             error_code='permission_denied')

        data = request.get_json(silent=True) or {}

        start_date, end_date, err = _read_date_range(data, required=False)
        if err:
            return api_error(err, error_code='validation_failed')

        updates = {}
        warnings = []
        if start_date or end_date:
            start_date = start_date or reservation['start_date']
            end_date = end_date or reservation['end_date']
            validation = validate_reservation_dates(
                organization_id,
                start_date,
                end_date,
                family_group=reservation['family_group'],
                property_name=data.get('property_name', reservation['property_name']),
                exclude_reservation_id=reservation_id,
                is_edit_mode=True,
                admin_override=bool(data.get('admin_override')) and current_user.is_manager
            )
            if not validation['is_valid']:
                return _validation_error(validation)
            updates['start_date'] = start_date
            updates['end_date'] = end_date
            warnings = validation['warnings']

        for field in ('guest_count', 'property_name', 'notes'):
            if field in data:
                updates[field] = data[field]

        if not updates:
            return api_error('Nothing to update', error_code='validation_failed')

        try:
            update_reservation(organization_id, reservation_id, **updates)
        except ValueError as e:
            return api_error(str(e), error_code='validation_failed')
        except sqlite3.Error as e:
            current_app.logger.error(f'Error updating reservation {reservation_id}: {e}', exc_info=True)
            return api_error('Could not save reservation', status=503, error_code='store_error')

        updated = get_reservation_by_id(organization_id, reservation_id)
        log_update('reservation', reservation_id, organization_id, current_user.id,
                   before={k: reservation.get(k) for k in updates},
                   after={k: updated.get(k) for k in updates})

        return api_success(data=updated, message='Reservation updated',
                           warning='; '.join(warnings) or None)

    @bp.route('/reservations/<int:reservation_id>/cancel', methods=['POST'])
    @login_required
    def reservations_cancel(reservation_id):
        """Cancel a reservation; its dates become available again."""
        organization_id = current_user.organization_id
        reservation = get_reservation_by_id(organization_id, reservation_id)
        if not reservation:
            return api_error('Reservation not found', status=404, error_code='not_found')
        if not _can_manage_group(reservation['family_group']):
            return api_error('You can only cancel your own family group reservations', status=403,
                             error_code='permission_denied')

        if not cancel_reservation(organization_id, reservation_id):
            return api_error('Reservation is already cancelled', error_code='validation_failed')

        log_update('reservation', reservation_id, organization_id, current_user.id,
                   before={'status': reservation['status']}, after={'status': 'cancelled'})

        dispatch_notification(RESERVATION_CANCELLED, organization_id, {
            'reservationId': reservation_id,
            'familyGroup': reservation['family_group'],
            'startDate': reservation['start_date'],
            'endDate': reservation['end_date'],
        })

        return api_success(message='Reservation cancelled', reservation_id=reservation_id)
