# Export ability permission classes and decorators for easy importing
from apps.core.permissions import HasAbilities, IsEmailVerified, requires_abilities

__all__ = ['HasAbilities', 'IsEmailVerified', 'requires_abilities']
