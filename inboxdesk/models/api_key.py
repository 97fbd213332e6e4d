"""
API Key Model

Account-scoped keys for third-party integrations.
"""

import secrets

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String

from inboxdesk.database import Base, utcnow

KEY_PREFIX = "idk_"
PREFIX_BYTES = 6


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)

    # The actual key - prefix (visible) + secret (hashed)
    key_prefix = Column(String(20), unique=True, nullable=False, index=True)
    key_hash = Column(String(128), nullable=False)

    # Permission strings; empty means the creator's role permissions
    scopes = Column(JSON, nullable=False, default=list)

    created_by_agent_id = Column(Integer, ForeignKey("agents.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    last_used_at = Column(DateTime, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_api_keys_account_revoked", "account_id", "revoked_at"),)

    def __repr__(self) -> str:
        return f"<ApiKey(id={self.id}, name={self.name}, prefix={self.key_prefix})>"

    @staticmethod
    def generate_key() -> tuple[str, str, str]:
        """
        Generate a new API key.

        Returns:
            tuple: (full_key, prefix, secret)
            - full_key: The complete key to show to user (only once!)
            - prefix: The visible prefix (e.g., "idk_a1b2c3d4e5f6")
            - secret: The secret part to hash and store
        """
        prefix = KEY_PREFIX + secrets.token_hex(PREFIX_BYTES)
        secret = secrets.token_urlsafe(32)
        return f"{prefix}_{secret}", prefix, secret

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return utcnow() > self.expires_at
