"""
API Key Service

Account-scoped API keys for third-party integrations. The full key is
returned once, at creation; only a SHA-256 hash of its secret is stored.
"""

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import hash_api_secret
from inboxdesk.database import utcnow
from inboxdesk.exceptions import AlreadyInStateError, ConflictError, ErrorCode, InternalError, ValidationError
from inboxdesk.models.api_key import ApiKey
from inboxdesk.permissions_config.permissions import invalid_permissions

logger = logging.getLogger(__name__)

# Maximum number of active API keys per account
MAX_KEYS_PER_ACCOUNT = 10

# Fresh prefixes tried when a generated one is already taken
KEY_GENERATION_ATTEMPTS = 5


class ApiKeyService:
    """Service for managing API keys."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_keys(self, account_id: int, include_revoked: bool = False) -> list[ApiKey]:
        stmt = select(ApiKey).where(ApiKey.account_id == account_id)
        if not include_revoked:
            stmt = stmt.where(ApiKey.revoked_at.is_(None))
        result = await self.db.execute(stmt.order_by(ApiKey.created_at.desc(), ApiKey.id.desc()))
        return list(result.scalars().all())

    async def create_key(
        self,
        account_id: int,
        name: str,
        created_by_agent_id: int | None = None,
        scopes: list[str] | None = None,
        expires_in_days: int | None = None,
    ) -> tuple[ApiKey, str]:
        """
        Create a new API key.

        Returns:
            (api_key, full_key) - the full key is not recoverable later
        """
        if await self._count_active_keys(account_id) >= MAX_KEYS_PER_ACCOUNT:
            raise ConflictError(
                f"Maximum number of API keys ({MAX_KEYS_PER_ACCOUNT}) reached.", error_code=ErrorCode.QUOTA_EXCEEDED
            )

        scopes = scopes or []
        unknown = invalid_permissions(scopes)
        if unknown:
            raise ValidationError(f"Invalid scopes: {', '.join(unknown)}", field="scopes")
        if expires_in_days is not None and expires_in_days <= 0:
            raise ValidationError("expiresInDays must be positive", field="expiresInDays")

        expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None
        for _ in range(KEY_GENERATION_ATTEMPTS):
            full_key, prefix, secret = ApiKey.generate_key()
            api_key = ApiKey(
                account_id=account_id,
                name=name,
                key_prefix=prefix,
                key_hash=hash_api_secret(secret),
                scopes=scopes,
                created_by_agent_id=created_by_agent_id,
                expires_at=expires_at,
            )
            self.db.add(api_key)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning(f"API key prefix collision on {prefix}, regenerating")
                continue
            await self.db.refresh(api_key)
            logger.info(f"API key created for account {account_id}: {prefix}")
            return api_key, full_key

        logger.error(f"Could not allocate a unique API key prefix for account {account_id}")
        raise InternalError("Could not generate a unique API key. Please try again.")

    async def revoke_key(self, api_key: ApiKey) -> ApiKey:
        if api_key.is_revoked:
            raise AlreadyInStateError("API key", "revoked")
        api_key.revoked_at = utcnow()
        await self.db.commit()
        await self.db.refresh(api_key)
        logger.info(f"API key revoked: {api_key.key_prefix}")
        return api_key

    async def _count_active_keys(self, account_id: int) -> int:
        return await self.db.scalar(
            select(func.count(ApiKey.id)).where(ApiKey.account_id == account_id, ApiKey.revoked_at.is_(None))
        )
