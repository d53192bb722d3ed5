"""
Notification dispatch.

Booking and split events are POSTed as JSON to the notification function
configured in NOTIFICATION_FUNCTION_URL. Dispatch is best effort: a
failure is logged and reported as False, never raised to the caller.
"""

import logging
from typing import Dict, Any, Optional

import httpx
from flask import current_app

logger = logging.getLogger(__name__)


RESERVATION_CONFIRMED = "reservation_confirmed"
RESERVATION_CANCELLED = "reservation_cancelled"
SPLIT_PAYMENT_CREATED = "split_payment_created"


def _build_headers(api_key: Optional[str]) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


def dispatch_notification(
    notification_type: str,
    organization_id: int,
    payload: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Send a notification event.

    Args:
        notification_type: Event name (e.g. 'split_payment_created')
        organization_id: Organization the event belongs to
        payload: Event data

    Returns:
        bool: True if the notification function accepted the event
    """
    url = current_app.config.get("NOTIFICATION_FUNCTION_URL")
    if not url:
        logger.info(f"Notification {notification_type} skipped: NOTIFICATION_FUNCTION_URL not configured")
        return False

    timeout = current_app.config.get("NOTIFICATION_TIMEOUT", 10)
    body = {
        "type": notification_type,
        "organizationId": organization_id,
        "data": payload or {},
    }

    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.post(
                url,
                json=body,
                headers=_build_headers(current_app.config.get("NOTIFICATION_API_KEY")),
            )
            response.raise_for_status()

        logger.info(f"Notification {notification_type} sent for organization {organization_id}")
        return True

    except httpx.HTTPStatusError as e:
        logger.warning(
            f"Notification {notification_type} rejected: HTTP {e.response.status_code}"
        )
        return False
    except httpx.HTTPError as e:
        logger.warning(f"Notification {notification_type} failed: {e}")
        return False
