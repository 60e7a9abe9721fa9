"""
Clients for downstream FitNEase services.
"""
from .base import ServiceClient
from .comms_service import CommsService
from .engagement_service import EngagementService

__all__ = [
    'ServiceClient',
    'CommsService',
    'EngagementService',
]
