"""
Identity resolution.

Every authenticated route depends on `get_caller_context`, which turns the
request credentials into a `CallerContext`. Sources are tried in order:

1. ``Authorization: Bearer`` - a signed JWT or an account API key
2. the session cookie (``session["principal"]``)
3. ``X-Admin-Token`` - static machine-to-machine credential

A request with none of them is rejected with 401.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.config import Settings
from inboxdesk.constants import ALGORITHM, ADMIN_TOKEN_HEADER, SESSION_PRINCIPAL_KEY, CallerKind
from inboxdesk.database import get_db, utcnow
from inboxdesk.exceptions import (
    AuthenticationError,
    ErrorCode,
    InvalidTokenError,
    PermissionDeniedError,
)
from inboxdesk.models.account import Account, AccountStatus
from inboxdesk.models.admin_user import AdminRole, AdminUser
from inboxdesk.models.agent import Agent, AgentStatus
from inboxdesk.models.api_key import KEY_PREFIX, ApiKey
from inboxdesk.models.tenant import Tenant, TenantStatus
from inboxdesk.permissions_config.permissions import DEFAULT_ROLES, OWNER_ROLE, WILDCARD

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_api_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


def create_access_token(subject: str, settings: Settings, expires_delta: timedelta | None = None) -> str:
    """Sign a JWT whose `sub` is "<kind>:<id>"."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode({"sub": subject, "exp": expire}, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> str:
    """Return the `sub` claim or raise InvalidTokenError."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Token expired")
        raise InvalidTokenError("Token has expired")
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {str(e)}")
        raise InvalidTokenError()

    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenError("Token does not contain 'sub' field")
    return subject


@dataclass(frozen=True)
class CallerContext:
    """Who is calling and which tenant/account they act in."""

    caller_id: int | str
    kind: CallerKind
    role: str
    account_id: int | None = None
    tenant_id: int | None = None
    permissions: tuple[str, ...] = field(default_factory=tuple)

    @property
    def actor_id(self) -> str:
        return f"{self.kind.value}:{self.caller_id}"

    @property
    def is_superadmin(self) -> bool:
        return self.role == AdminRole.superadmin.value

    @property
    def is_admin(self) -> bool:
        return self.kind in (CallerKind.ADMIN, CallerKind.SUPERADMIN) or (
            self.kind == CallerKind.SERVICE and self.is_superadmin
        )


# ============================================================================
# Principal loaders
# ============================================================================


def ensure_tenant_active(tenant_id: int | None, tenant_status: str | None) -> None:
    """Principals of a deactivated tenant are locked out until it is reactivated."""
    if tenant_id is not None and tenant_status != TenantStatus.active.value:
        logger.warning("Access attempt on inactive tenant", extra={"tenant_id": tenant_id})
        raise PermissionDeniedError("Tenant is not active", error_code=ErrorCode.TENANT_INACTIVE)


def _agent_permissions(agent: Agent) -> tuple[str, ...]:
    if agent.is_owner:
        return (WILDCARD,)
    if agent.custom_role is not None:
        return tuple(agent.custom_role.permissions or [])
    return tuple(DEFAULT_ROLES.get(agent.role, {}).get("permissions", []))


async def _load_agent(agent_id: int, db: AsyncSession) -> CallerContext:
    result = await db.execute(
        select(Agent, Account.tenant_id, Account.status, Tenant.status)
        .join(Account, Agent.account_id == Account.id)
        .join(Tenant, Account.tenant_id == Tenant.id)
        .where(Agent.id == agent_id)
    )
    row = result.first()
    if row is None:
        raise InvalidTokenError("Agent not found")
    agent, tenant_id, account_status, tenant_status = row

    ensure_tenant_active(tenant_id, tenant_status)
    if agent.status != AgentStatus.active.value:
        raise AuthenticationError("Agent is inactive")
    if account_status != AccountStatus.active.value:
        raise AuthenticationError(f"Account is {account_status}")

    return CallerContext(
        caller_id=agent.id,
        kind=CallerKind.AGENT,
        role=OWNER_ROLE if agent.is_owner else (agent.custom_role.name if agent.custom_role else agent.role),
        account_id=agent.account_id,
        tenant_id=tenant_id,
        permissions=_agent_permissions(agent),
    )


async def _load_admin(admin_id: int, db: AsyncSession) -> CallerContext:
    admin = await db.get(AdminUser, admin_id)
    if admin is None:
        raise InvalidTokenError("Admin not found")
    if not admin.is_active:
        raise AuthenticationError("Admin is inactive")
    if admin.tenant_id is not None:
        tenant_status = await db.scalar(select(Tenant.status).where(Tenant.id == admin.tenant_id))
        ensure_tenant_active(admin.tenant_id, tenant_status)

    kind = CallerKind.SUPERADMIN if admin.role == AdminRole.superadmin.value else CallerKind.ADMIN
    return CallerContext(
        caller_id=admin.id,
        kind=kind,
        role=admin.role,
        tenant_id=admin.tenant_id,
        permissions=(WILDCARD,),
    )


async def _load_principal(subject: str, db: AsyncSession) -> CallerContext:
    """Resolve "agent:<id>" / "admin:<id>"."""
    kind, _, raw_id = subject.partition(":")
    try:
        principal_id = int(raw_id)
    except ValueError:
        raise InvalidTokenError()

    if kind == "agent":
        return await _load_agent(principal_id, db)
    if kind == "admin":
        return await _load_admin(principal_id, db)
    raise InvalidTokenError()


async def _load_api_key(full_key: str, db: AsyncSession) -> CallerContext:
    # idk_<12 hex>_<secret>; the secret itself may contain underscores
    parts = full_key.split("_", 2)
    if len(parts) != 3:
        raise InvalidTokenError("Invalid API key")
    prefix = f"{parts[0]}_{parts[1]}"
    secret = parts[2]

    result = await db.execute(
        select(ApiKey, Account.tenant_id, Account.status, Tenant.status)
        .join(Account, ApiKey.account_id == Account.id)
        .join(Tenant, Account.tenant_id == Tenant.id)
        .where(ApiKey.key_prefix == prefix)
    )
    row = result.first()
    if row is None:
        raise InvalidTokenError("Invalid API key")
    api_key, tenant_id, account_status, tenant_status = row

    if not hmac.compare_digest(hash_api_secret(secret), api_key.key_hash):
        raise InvalidTokenError("Invalid API key")
    if api_key.is_revoked or api_key.is_expired():
        raise InvalidTokenError("API key revoked or expired")
    ensure_tenant_active(tenant_id, tenant_status)
    if account_status != AccountStatus.active.value:
        raise AuthenticationError(f"Account is {account_status}")

    api_key.last_used_at = utcnow()
    await db.commit()

    return CallerContext(
        caller_id=f"apikey-{api_key.id}",
        kind=CallerKind.SERVICE,
        role=OWNER_ROLE,
        account_id=api_key.account_id,
        tenant_id=tenant_id,
        permissions=tuple(api_key.scopes) if api_key.scopes else (WILDCARD,),
    )


def _session_principal(request: Request) -> dict | None:
    if "session" not in request.scope:
        return None
    return request.session.get(SESSION_PRINCIPAL_KEY)


# ============================================================================
# Dependencies
# ============================================================================


async def resolve_caller(request: Request, db: AsyncSession) -> CallerContext:
    settings: Settings = request.app.state.services.settings

    # 1. Bearer token (JWT or API key)
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise InvalidTokenError("Malformed Authorization header")
        if token.startswith(KEY_PREFIX):
            return await _load_api_key(token, db)
        return await _load_principal(decode_access_token(token, settings), db)

    # 2. Session cookie
    principal = _session_principal(request)
    if principal:
        return await _load_principal(f"{principal.get('kind')}:{principal.get('id')}", db)

    # 3. Static admin token
    admin_token = request.headers.get(ADMIN_TOKEN_HEADER)
    if admin_token:
        if not settings.admin_token or not hmac.compare_digest(admin_token, settings.admin_token):
            logger.warning("Rejected invalid admin token", extra={"path": request.url.path})
            raise InvalidTokenError("Invalid admin token")
        return CallerContext(
            caller_id="admin-token",
            kind=CallerKind.SERVICE,
            role=AdminRole.superadmin.value,
            tenant_id=getattr(request.state, "tenant_id", None),
            permissions=(WILDCARD,),
        )

    raise AuthenticationError()


async def get_caller_context(request: Request, db: AsyncSession = Depends(get_db)) -> CallerContext:
    """
    Resolve the caller once per request.

    A caller bound to a tenant that differs from the tenant resolved by
    TenantMiddleware is refused with 403 TENANT_MISMATCH.
    """
    cached = getattr(request.state, "caller", None)
    if cached is not None:
        return cached

    caller = await resolve_caller(request, db)

    request_tenant_id = getattr(request.state, "tenant_id", None)
    if (
        request_tenant_id is not None
        and caller.tenant_id is not None
        and caller.tenant_id != request_tenant_id
        and not caller.is_superadmin
    ):
        logger.warning(
            "Caller tenant does not match request tenant",
            extra={
                "type": "security_violation",
                "actor": caller.actor_id,
                "caller_tenant_id": caller.tenant_id,
                "request_tenant_id": request_tenant_id,
                "path": request.url.path,
            },
        )
        raise PermissionDeniedError("Access denied for this tenant", error_code=ErrorCode.TENANT_MISMATCH)

    request.state.caller = caller
    return caller


async def require_agent(caller: CallerContext = Depends(get_caller_context)) -> CallerContext:
    """Caller must act inside an account (agent session/JWT or API key)."""
    if caller.account_id is None:
        raise PermissionDeniedError("Agent access required")
    return caller


async def require_tenant_admin(
    request: Request, caller: CallerContext = Depends(get_caller_context)
) -> CallerContext:
    """
    Caller must be a tenant admin or a superadmin.

    Superadmins act in the tenant resolved from the request; the returned
    context always carries a tenant id.
    """
    if not caller.is_admin:
        raise PermissionDeniedError("Admin access required")

    tenant_id = caller.tenant_id
    if tenant_id is None or caller.is_superadmin:
        tenant_id = getattr(request.state, "tenant_id", None) or caller.tenant_id
    if tenant_id is None:
        raise PermissionDeniedError("Tenant context required", error_code=ErrorCode.TENANT_CONTEXT_REQUIRED)

    if tenant_id == caller.tenant_id:
        return caller
    return CallerContext(
        caller_id=caller.caller_id,
        kind=caller.kind,
        role=caller.role,
        account_id=caller.account_id,
        tenant_id=tenant_id,
        permissions=caller.permissions,
    )


async def require_superadmin(caller: CallerContext = Depends(get_caller_context)) -> CallerContext:
    if not caller.is_superadmin:
        raise PermissionDeniedError("Superadmin access required")
    return caller
