from .auth import User, Role, UserRole, Permission, RolePermission
from .security import RevokedToken, SecurityEvent

__all__ = [
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission',
    'RevokedToken', 'SecurityEvent',
]
