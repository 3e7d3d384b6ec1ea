"""
Per-user provider credentials and platform access grants.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint

from soundforge.models.job import Base, utcnow


class CredentialService(str, enum.Enum):
    """Services a user can bring a key for."""
    fal = 'fal'
    minimax = 'minimax'
    replicate = 'replicate'
    bunny = 'bunny'


class ProviderCredential(Base):
    """
    A user's key for one external service.

    For bunny, storage_zone and pull_zone are required as well.
    """
    __tablename__ = 'provider_credentials'
    __table_args__ = (UniqueConstraint('owner_id', 'service', name='uq_credential_owner_service'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(100), nullable=False, index=True)
    service = Column(String(20), nullable=False)
    api_key = Column(Text, nullable=False)
    storage_zone = Column(String(255), nullable=True)
    pull_zone = Column(String(255), nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f'<ProviderCredential owner={self.owner_id} service={self.service}>'


class PlatformAccess(Base):
    """Grant written by the billing layer once a user has paid."""
    __tablename__ = 'platform_access'

    owner_id = Column(String(100), primary_key=True)
    granted_at = Column(DateTime, nullable=False, default=utcnow)
