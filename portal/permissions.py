from portal.errors import AuthorizationError
from portal.models import UserRole


def require_admin(identity):
    """Raise AuthorizationError unless `identity` is a signed-in admin."""
    if identity is None or identity.role != UserRole.ADMIN:
        raise AuthorizationError('Unauthorized: Admins only')
