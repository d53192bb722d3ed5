"""
Tests for notification dispatch.
HTTP calls are served by an httpx.MockTransport.
"""

import json

import httpx
import pytest

from blueprints.cabin.services.notification_service import (
    dispatch_notification,
    SPLIT_PAYMENT_CREATED,
)


URL = 'https://notify.example.com/send'


@pytest.fixture
def transport(app, monkeypatch):
    """Route httpx.Client through a mock handler; returns the captured requests."""
    requests = []
    responses = {'status': 200}
    real_client = httpx.Client

    def handler(request):
        requests.append(request)
        if responses['status'] is None:
            raise httpx.ConnectError('connection refused', request=request)
        return httpx.Response(responses['status'], json={'ok': True})

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, 'Client', client_factory)
    app.config['NOTIFICATION_FUNCTION_URL'] = URL
    app.config['NOTIFICATION_API_KEY'] = None
    return requests, responses


class TestDispatchNotification:

    def test_skipped_without_url(self, app):
        assert dispatch_notification(SPLIT_PAYMENT_CREATED, 1, {'splitId': 1}) is False

    def test_posts_event(self, app, transport):
        requests, _ = transport

        assert dispatch_notification(SPLIT_PAYMENT_CREATED, 1, {'splitId': 5}) is True

        assert len(requests) == 1
        assert str(requests[0].url) == URL
        assert requests[0].method == 'POST'
        body = json.loads(requests[0].content)
        assert body == {'type': 'split_payment_created', 'organizationId': 1, 'data': {'splitId': 5}}
        assert 'authorization' not in requests[0].headers

    def test_bearer_token(self, app, transport):
        requests, _ = transport
        app.config['NOTIFICATION_API_KEY'] = 'secret-key'

        dispatch_notification(SPLIT_PAYMENT_CREATED, 1)

        assert requests[0].headers['authorization'] == 'Bearer secret-key'

    def test_rejected_returns_false(self, app, transport):
        _, responses = transport
        responses['status'] = 500

        assert dispatch_notification(SPLIT_PAYMENT_CREATED, 1) is False

    def test_connection_error_returns_false(self, app, transport):
        _, responses = transport
        responses['status'] = None

        assert dispatch_notification(SPLIT_PAYMENT_CREATED, 1) is False
