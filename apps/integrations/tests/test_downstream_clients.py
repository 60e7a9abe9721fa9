"""
Tests for the comms and engagement HTTP clients.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from apps.integrations.services import CommsService, EngagementService

REQUEST = 'apps.integrations.services.base.requests.request'


@pytest.fixture(autouse=True)
def downstream_settings(settings):
    settings.COMMS_SERVICE_URL = 'http://comms.test'
    settings.ENGAGEMENT_SERVICE_URL = 'http://engagement.test/'
    settings.SERVICE_API_TOKEN = 'service-token'


def _response(status_code=200, json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = json_data if json_data is not None else {'success': True}
    response.text = 'body'
    return response


USER_DATA = {
    'user_id': 7,
    'email': 'jane@example.com',
    'first_name': 'Jane',
    'last_name': 'Doe',
    'verification_code': '123456',
}


class TestCommsService:

    def test_send_verification_email_posts_json_with_bearer(self):
        with patch(REQUEST, return_value=_response()) as mock_request:
            result = CommsService().send_verification_email(USER_DATA, 'http://app/verify?token=abc')

        assert result == {'success': True}
        method, url = mock_request.call_args.args
        kwargs = mock_request.call_args.kwargs
        assert method == 'POST'
        assert url == 'http://comms.test/api/comms/send-verification'
        assert kwargs['headers']['Authorization'] == 'Bearer service-token'
        assert kwargs['timeout'] == 30
        assert kwargs['json']['to_email'] == 'jane@example.com'
        assert kwargs['json']['to_name'] == 'Jane Doe'
        assert kwargs['json']['email_type'] == 'email_verification'
        assert kwargs['json']['verification_url'] == 'http://app/verify?token=abc'
        assert 'timestamp' in kwargs['json']

    def test_delete_notification_uses_delete(self):
        with patch(REQUEST, return_value=_response()) as mock_request:
            CommsService().delete_email_verification_notification(7)

        method, url = mock_request.call_args.args
        assert method == 'DELETE'
        assert url == 'http://comms.test/api/comms/notifications/email-verification/7'

    def test_error_status_returns_none(self):
        with patch(REQUEST, return_value=_response(500)):
            assert CommsService().send_welcome_email(USER_DATA) is None

    def test_connection_error_returns_none(self):
        with patch(REQUEST, side_effect=requests.ConnectionError('down')):
            assert CommsService().send_welcome_email(USER_DATA) is None


class TestEngagementService:

    @pytest.mark.parametrize('call, path, event_type', [
        (lambda s: s.notify_user_registration(USER_DATA), '/api/engagement/user-registration', 'user_registration'),
        (lambda s: s.notify_email_verification(7), '/api/engagement/email-verification', 'email_verified'),
        (lambda s: s.track_user_login(7), '/api/engagement/user-login', 'user_login'),
    ])
    def test_events_posted_to_expected_paths(self, call, path, event_type):
        with patch(REQUEST, return_value=_response()) as mock_request:
            call(EngagementService())

        method, url = mock_request.call_args.args
        payload = mock_request.call_args.kwargs['json']
        assert method == 'POST'
        assert url == f'http://engagement.test{path}'
        assert payload['user_id'] == 7
        assert payload['event_type'] == event_type
        assert 'timestamp' in payload

    def test_timeout_is_swallowed(self):
        with patch(REQUEST, side_effect=requests.Timeout('slow')):
            assert EngagementService().track_user_login(7) is None
