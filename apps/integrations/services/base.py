"""
Shared HTTP client for service-to-service calls.
"""
import logging
import requests
from typing import Any, Dict, Optional
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

SERVICE_NAME = 'fitnease-auth'


class ServiceClient:
    """
    Thin JSON client for an internal FitNEase service.

    Every request carries ``Authorization: Bearer {SERVICE_API_TOKEN}`` and
    times out after ``DOWNSTREAM_TIMEOUT`` seconds. Failures are logged and
    reported as ``None``; callers never see transport errors.
    """

    base_url_setting = None
    default_base_url = None
    label = 'downstream'

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[int] = None):
        self.base_url = (
            base_url
            or getattr(settings, self.base_url_setting or '', None)
            or self.default_base_url
        ).rstrip('/')
        self.token = token if token is not None else getattr(settings, 'SERVICE_API_TOKEN', '')
        self.timeout = timeout or getattr(settings, 'DOWNSTREAM_TIMEOUT', 30)

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        }

    @staticmethod
    def timestamp() -> str:
        return timezone.now().isoformat()

    def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                context: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Send a request and return the decoded JSON body on success.

        Args:
            method: HTTP method
            path: Path below the service base URL
            payload: JSON body (``timestamp`` is added when missing)
            context: Extra fields for log records

        Returns:
            Response JSON, ``{}`` for an empty success body, or None on failure
        """
        url = f"{self.base_url}{path}"
        context = dict(context or {}, service=SERVICE_NAME, url=url)

        if payload is not None:
            payload = dict(payload)
            payload.setdefault('timestamp', self.timestamp())

        try:
            response = requests.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(
                f"{self.label} service communication error",
                extra=dict(context, error=str(e))
            )
            return None

        if not response.ok:
            logger.warning(
                f"{self.label} service returned an error",
                extra=dict(context, status_code=response.status_code, response_body=response.text[:500])
            )
            return None

        try:
            return response.json()
        except ValueError:
            return {}
