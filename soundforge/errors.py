"""
Error taxonomy for job submission, status checks and storage migration.

Every error carries the HTTP status the API layer renders it with and a short
machine-readable ``code`` the client can branch on.
"""


class SoundForgeError(Exception):
    """Base class for all domain errors."""
    status_code = 500
    code = 'error'

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class ValidationError(SoundForgeError):
    """Input rejected before any provider call."""
    status_code = 422
    code = 'validation_error'


class CredentialError(SoundForgeError):
    """Provider credentials are missing or were rejected."""
    status_code = 400
    code = 'credential_error'


class AuthzError(SoundForgeError):
    """Caller is not allowed to perform this operation."""
    status_code = 403
    code = 'authz_error'


class AccessDeniedError(AuthzError):
    """Platform access is required to submit jobs."""
    code = 'access_denied'


class NotFoundError(SoundForgeError):
    """Job not found."""
    status_code = 404
    code = 'not_found'


class TransientError(SoundForgeError):
    """Provider or network failure; retry later."""
    status_code = 503
    code = 'transient_error'


class ProviderTerminalFailure(SoundForgeError):
    """Provider reported the job itself as failed."""
    status_code = 502
    code = 'provider_failure'


class NotConfiguredError(SoundForgeError):
    """CDN storage is not configured."""
    status_code = 409
    code = 'not_configured'


class AlreadyStoredError(SoundForgeError):
    """Output is already stored on the CDN."""
    status_code = 409
    code = 'already_stored'
