"""
Tests for the DRF exception handler and service exceptions.
"""
from unittest.mock import patch

import pytest
from django_ratelimit.exceptions import Ratelimited
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APIRequestFactory

from apps.core.exceptions import (
    AccountDisabled, FitneaseException, RateLimited, custom_exception_handler,
)


@pytest.fixture
def request_context():
    request = APIRequestFactory().post('/api/auth/login', {'email': 'jane@example.com'}, format='json')
    request.request_id = 'req-123'
    return {'request': request}


class TestCustomExceptionHandler:

    def test_service_exception(self, request_context):
        response = custom_exception_handler(AccountDisabled(), request_context)

        assert response.status_code == 403
        assert response.data == {
            'error': 'Account disabled',
            'code': 'ACCOUNT_DISABLED',
            'request_id': 'req-123',
        }

    def test_service_exception_details_are_merged(self, request_context):
        exc = FitneaseException('Check your inbox', details={'requires_verification': True})

        response = custom_exception_handler(exc, request_context)

        assert response.status_code == 400
        assert response.data['requires_verification'] is True
        assert response.data['error'] == 'Check your inbox'

    def test_rate_limited_service_exception_sets_retry_after(self, request_context):
        exc = RateLimited(details={'retry_after': 42})

        response = custom_exception_handler(exc, request_context)

        assert response.status_code == 429
        assert response['Retry-After'] == '42'

    def test_validation_error(self, request_context):
        response = custom_exception_handler(ValidationError({'age': ['Too young.']}), request_context)

        assert response.status_code == 400
        assert response.data['error'] == 'Validation error'
        assert response.data['code'] == 'VALIDATION_ERROR'
        assert response.data['details'] == {'age': ['Too young.']}
        assert response.data['request_id'] == 'req-123'

    def test_drf_detail_is_flattened(self, request_context):
        response = custom_exception_handler(NotFound('User not found'), request_context)

        assert response.status_code == 404
        assert response.data['error'] == 'User not found'
        assert response.data['code'] == 'NOT_FOUND'
        assert 'detail' not in response.data

    def test_ratelimited(self, request_context):
        with patch('apps.core.logging.SecurityLogger.log_rate_limit_exceeded') as mock_log:
            response = custom_exception_handler(Ratelimited(), request_context)

        assert response.status_code == 429
        assert response.data['code'] == 'RATE_LIMIT_EXCEEDED'
        assert response['Retry-After'] == '60'
        mock_log.assert_called_once()

    def test_unhandled_exception(self, request_context):
        response = custom_exception_handler(RuntimeError('boom'), request_context)

        assert response.status_code == 500
        assert response.data['code'] == 'INTERNAL_ERROR'
        assert 'boom' not in response.data['detail']
