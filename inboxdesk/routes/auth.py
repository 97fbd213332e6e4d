"""Login, logout and current-caller routes."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from inboxdesk.auth import CallerContext, create_access_token, get_caller_context
from inboxdesk.constants import SESSION_PRINCIPAL_KEY
from inboxdesk.database import get_db
from inboxdesk.schemas.auth import LoginRequest, TokenResponse
from inboxdesk.schemas.common import ok, serialize
from inboxdesk.services import auth_service
from inboxdesk.services.container import ServiceContainer, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _start_session(request: Request, services: ServiceContainer, kind: str, principal_id: int) -> dict:
    request.session[SESSION_PRINCIPAL_KEY] = {"kind": kind, "id": principal_id}
    settings = services.settings
    token = create_access_token(f"{kind}:{principal_id}", settings)
    return serialize(
        TokenResponse,
        {"access_token": token, "expires_in": settings.access_token_expire_minutes * 60},
    )


@router.post("/agent/login")
async def agent_login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    """Authenticate an agent; sets the session cookie and returns a bearer token."""
    agent = await auth_service.authenticate_agent(
        db, credentials.email, credentials.password, tenant_id=request.state.tenant_id
    )
    logger.info("Agent logged in: id=%d", agent.id)
    return ok(_start_session(request, services, "agent", agent.id))


@router.post("/admin/login")
async def admin_login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    services: ServiceContainer = Depends(get_services),
):
    admin = await auth_service.authenticate_admin(
        db, credentials.email, credentials.password, tenant_id=request.state.tenant_id
    )
    logger.info("Admin logged in: id=%d role=%s", admin.id, admin.role)
    return ok(_start_session(request, services, "admin", admin.id))


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return ok(message="Logged out")


@router.get("/me")
async def me(caller: CallerContext = Depends(get_caller_context)):
    return ok(
        {
            "callerId": caller.caller_id,
            "actorId": caller.actor_id,
            "kind": caller.kind.value,
            "role": caller.role,
            "accountId": caller.account_id,
            "tenantId": caller.tenant_id,
            "permissions": list(caller.permissions),
        }
    )
