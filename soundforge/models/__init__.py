"""
SQLAlchemy models.
"""
from soundforge.models.job import Base, Job, JobKind, JobStatus, Provider
from soundforge.models.credential import CredentialService, PlatformAccess, ProviderCredential

__all__ = [
    'Base',
    'Job',
    'JobKind',
    'JobStatus',
    'Provider',
    'CredentialService',
    'PlatformAccess',
    'ProviderCredential',
]
