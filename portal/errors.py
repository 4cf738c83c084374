"""Exception taxonomy shared by the session holder, stores and web layer."""


class PortalError(Exception):
    """Base class for every error raised by the portal core."""


class AuthorizationError(PortalError):
    """The caller is not signed in as an admin."""


class NotFoundError(PortalError):
    """The target record does not exist in the remote table."""

    def __init__(self, table, record_id):
        super().__init__(f'{table}/{record_id} does not exist')
        self.table = table
        self.record_id = record_id


class SelfDeletionError(PortalError):
    """An admin tried to delete their own profile."""


class RemoteFailure(PortalError):
    """Transport or storage failure reported by a remote collaborator."""


class InactiveAccountError(PortalError):
    """The resolved profile is not active."""


class AuthenticationError(PortalError):
    """The identity provider rejected the supplied credentials."""


class IdentityProviderError(PortalError):
    """Transient identity provider failure (network, timeout)."""


class ProvisioningUnavailable(PortalError):
    """No account provisioning API is configured for new users."""


class InvalidFieldError(PortalError, ValueError):
    """A field holds a value outside its closed set of choices, or a
    text field holds something that is not text."""

    def __init__(self, field, value, choices=None):
        if choices is None:
            message = f'{field} must be text, got {value!r}'
        else:
            message = f'{field} must be one of {sorted(choices)}, got {value!r}'
        super().__init__(message)
        self.field = field
        self.value = value


class MissingFieldError(PortalError, ValueError):
    """A required attribute was not supplied."""

    def __init__(self, field):
        super().__init__(f'{field} is required')
        self.field = field
