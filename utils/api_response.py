"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "...", "error_code": "..."}
    Warning:  {"success": true, "data": {...}, "warning": "..."}

Usage:
    from utils.api_response import api_success, api_error

    return api_success(data={'id': 1}, message='Reservation created')
    return api_error('Check-in date is required', status=400)
"""

from flask import jsonify
from typing import Any


# HTTP status for each operation error code: 4xx means fix the request,
# 503 means retry later
ERROR_CODE_STATUS = {
    'validation_failed': 400,
    'invalid_occupancy': 400,
    'invalid_settings': 400,
    'conflict': 409,
    'permission_denied': 403,
    'not_found': 404,
    'billing_locked': 423,
    'store_error': 503,
}


def api_success(
    data: dict | list | None = None,
    message: str | None = None,
    warning: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional dict or list to include as 'data' key.
        message: Optional success message.
        warning: Optional warning message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response.

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if warning:
        response['warning'] = warning

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, error_code: str | None = None, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message.
        status: HTTP status code (default 400).
        error_code: Machine readable error code.
        **extra_fields: Additional top-level fields (e.g., errors, conflicts).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if error_code:
        response['error_code'] = error_code

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error_from_result(result: dict, **extra_fields: Any) -> tuple:
    """
    Build an error response from a failed operation result
    ({'success': False, 'error': ..., 'error_code': ...}).
    """
    error_code = result.get('error_code')
    return api_error(
        result.get('error') or 'Request failed',
        status=ERROR_CODE_STATUS.get(error_code, 400),
        error_code=error_code,
        **extra_fields
    )
