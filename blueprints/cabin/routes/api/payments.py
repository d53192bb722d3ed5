"""
Payment API routes.
"""

import sqlite3

from flask import current_app, request
from flask_login import login_required, current_user

from models.payment import record_payment_received, get_payment_by_id
from utils.api_response import api_success, api_error
from utils.audit import log_update


def register_routes(bp):
    """Register payment API routes on the blueprint."""

    @bp.route('/payments/<int:payment_id>/record', methods=['POST'])
    @login_required
    def payments_record(payment_id):
        """
        Record the total amount received on a payment. Locks its billing.

        Request JSON:
        {"amount_paid": 150.00}
        """
        if not current_user.is_manager:
            return api_error('Only admins and calendar keepers can record payments', status=403,
                             error_code='permission_denied')

        data = request.get_json(silent=True) or {}
        try:
            amount_paid = float(data.get('amount_paid'))
        except (TypeError, ValueError):
            return api_error('amount_paid must be a number', error_code='validation_failed')

        organization_id = current_user.organization_id
        before = get_payment_by_id(organization_id, payment_id)
        if not before:
            return api_error('Payment not found', status=404, error_code='not_found')

        try:
            payment = record_payment_received(
                organization_id, payment_id, amount_paid, updated_by=current_user.id
            )
        except ValueError as e:
            return api_error(str(e), error_code='validation_failed')
        except sqlite3.Error as e:
            current_app.logger.error(f'Error recording payment {payment_id}: {e}', exc_info=True)
            return api_error('Could not save payment', status=503, error_code='store_error')

        log_update('payment', payment_id, organization_id, current_user.id,
                   before={'amount_paid': before['amount_paid'], 'status': before['status']},
                   after={'amount_paid': payment['amount_paid'], 'status': payment['status']})

        return api_success(data=payment, message='Payment recorded')
