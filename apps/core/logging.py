"""
Custom logging formatters for structured JSON logging.
"""
import json
import logging
import re
import traceback
from datetime import datetime, timezone as dt_timezone
from django.utils import timezone
import sentry_sdk


class PIIMasker:
    """
    Utility class to mask sensitive PII data in logs.
    """

    PHONE_PATTERN = re.compile(r'\+?\d{10,15}')
    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')
    SECRET_PATTERN = re.compile(
        r'(token|secret|password|authorization)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)',
        re.IGNORECASE
    )
    BEARER_PATTERN = re.compile(r'Bearer\s+[A-Za-z0-9._~+/=-]+', re.IGNORECASE)

    # Field names whose values are always masked
    SENSITIVE_FIELDS = {
        'password', 'password_hash', 'raw_password',
        'token', 'plain_text_token', 'token_hash', 'access_token', 'bearer_token',
        'verification_code', 'email_verification_code', 'email_verification_token',
        'secret', 'secret_key', 'authorization', 'service_api_token',
        'phone_number', 'medical_conditions',
    }

    @classmethod
    def mask_phone(cls, text):
        if not isinstance(text, str):
            return text
        return cls.PHONE_PATTERN.sub(lambda m: m.group(0)[:3] + '*' * (len(m.group(0)) - 3), text)

    @classmethod
    def mask_email(cls, text):
        """Mask the local part of email addresses in text."""
        if not isinstance(text, str):
            return text

        def mask_email_match(match):
            username, _, domain = match.group(0).partition('@')
            if len(username) > 1:
                username = username[0] + '*' * (len(username) - 1)
            return f"{username}@{domain}"

        return cls.EMAIL_PATTERN.sub(mask_email_match, text)

    @classmethod
    def mask_secrets(cls, text):
        """Mask tokens, passwords and verification codes in text."""
        if not isinstance(text, str):
            return text
        text = cls.BEARER_PATTERN.sub('Bearer ********', text)
        return cls.SECRET_PATTERN.sub(r'\1: ********', text)

    @classmethod
    def mask_text(cls, text):
        """Apply all masking patterns to text."""
        if not isinstance(text, str):
            return text
        text = cls.mask_secrets(text)
        text = cls.mask_phone(text)
        text = cls.mask_email(text)
        return text

    @classmethod
    def mask_dict(cls, data):
        """Recursively mask sensitive data in dictionaries."""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            if key.lower() in cls.SENSITIVE_FIELDS:
                masked[key] = '********' if value not in (None, '') else value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, list):
                masked[key] = [
                    cls.mask_dict(item) if isinstance(item, dict)
                    else cls.mask_text(item) if isinstance(item, str)
                    else item
                    for item in value
                ]
            elif isinstance(value, str):
                masked[key] = cls.mask_text(value)
            else:
                masked[key] = value

        return masked


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.

    Includes request_id and Celery task context when present and masks
    sensitive PII data in the message and extra fields.
    """

    RESERVED_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs', 'message',
        'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName', 'request_id', 'task_id', 'task_name',
    }

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(dt_timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_text(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        for attr in ('request_id', 'task_id', 'task_name'):
            if getattr(record, attr, None):
                log_data[attr] = getattr(record, attr)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': PIIMasker.mask_text(str(record.exc_info[1])),
                'traceback': [PIIMasker.mask_text(line) for line in traceback.format_exception(*record.exc_info)],
            }

        for key, value in record.__dict__.items():
            if key in self.RESERVED_ATTRS or key.startswith('_'):
                continue
            if key.lower() in PIIMasker.SENSITIVE_FIELDS:
                log_data[key] = '********'
                continue
            try:
                if isinstance(value, dict):
                    masked_value = PIIMasker.mask_dict(value)
                elif isinstance(value, str):
                    masked_value = PIIMasker.mask_text(value)
                else:
                    masked_value = value

                json.dumps(masked_value)  # Test if serializable
                log_data[key] = masked_value
            except (TypeError, ValueError):
                log_data[key] = PIIMasker.mask_text(str(value))

        return json.dumps(log_data)


class SecurityLogger:
    """
    Centralized security event logging.

    Writes structured events to the ``security`` logger. Critical events
    are also sent to Sentry for alerting.
    """

    CRITICAL_EVENTS = {
        'service_token_created',
        'debug_endpoint_used',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Args:
            event_type: Type of security event (e.g., 'failed_login', 'invalid_token')
            level: Log level ('info', 'warning', 'error', 'critical')
            **context: Additional context data (ip_address, user_email, etc.)
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'timestamp': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(
            f"Security event: {event_type}",
            extra=log_data
        )

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
                extras=log_data
            )

    @staticmethod
    def log_failed_login(email: str, ip_address: str, user_agent: str = None, reason: str = None):
        SecurityLogger.log_event(
            'failed_login',
            level='warning',
            user_email=email,
            ip_address=ip_address,
            user_agent=user_agent,
            reason=reason
        )

    @staticmethod
    def log_invalid_token(ip_address: str, path: str = None):
        SecurityLogger.log_event(
            'invalid_token',
            level='warning',
            ip_address=ip_address,
            path=path
        )

    @staticmethod
    def log_permission_denied(user, required_abilities, ip_address: str = None, path: str = None):
        """
        Log a request rejected for missing token abilities.

        Args:
            user: User instance (or None for anonymous requests)
            required_abilities: Abilities the endpoint requires
            ip_address: IP address of the request
            path: Request path
        """
        SecurityLogger.log_event(
            'permission_denied',
            level='warning',
            user_id=getattr(user, 'id', None),
            user_email=getattr(user, 'email', None),
            required_abilities=sorted(required_abilities),
            ip_address=ip_address,
            path=path
        )

    @staticmethod
    def log_rate_limit_exceeded(
        endpoint: str,
        ip_address: str,
        user_email: str = None,
        limit: str = None
    ):
        SecurityLogger.log_event(
            'rate_limit_exceeded',
            level='warning',
            endpoint=endpoint,
            ip_address=ip_address,
            user_email=user_email,
            limit=limit
        )

    @staticmethod
    def log_service_token_created(actor, service_name: str, abilities, ip_address: str = None):
        SecurityLogger.log_event(
            'service_token_created',
            level='warning',
            actor_id=getattr(actor, 'id', None),
            service_name=service_name,
            abilities=list(abilities),
            ip_address=ip_address
        )

    @staticmethod
    def log_debug_endpoint_used(endpoint: str, target_email: str, ip_address: str = None):
        SecurityLogger.log_event(
            'debug_endpoint_used',
            level='error',
            endpoint=endpoint,
            target_email=target_email,
            ip_address=ip_address
        )
