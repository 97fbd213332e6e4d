"""
Tenant Resolution Middleware

Resolves the current tenant from:
  1. X-Tenant-Slug request header  (API clients)
  2. Subdomain of the request host (browser clients, e.g. acme.localhost)

Sets request.state.tenant_id and request.state.tenant_subdomain for
downstream dependencies. Only active tenants resolve. When
`enable_multitenancy` is False this middleware is a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from inboxdesk.constants import TENANT_HEADER
from inboxdesk.models.tenant import TenantStatus
from inboxdesk.services import tenant_service

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


def _extract_subdomain_from_host(host: str, app_domain: str) -> str | None:
    """
    Extract the tenant subdomain from a host header.

    Examples:
        host="acme.localhost", app_domain="localhost" → "acme"
        host="localhost",      app_domain="localhost" → None
        host="a.b.localhost",  app_domain="localhost" → "a.b"
    """
    host = host.split(":")[0].lower()
    if host != app_domain and host.endswith("." + app_domain):
        return host[: -(len(app_domain) + 1)]
    return None


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Resolve the current tenant and attach it to request.state.

    Attributes set on request.state:
        tenant_id        (int | None)  : DB primary key of the active tenant
        tenant_subdomain (str | None)  : subdomain of the active tenant
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Always initialise state so downstream code can read it safely
        request.state.tenant_id = None
        request.state.tenant_subdomain = None

        services = request.app.state.services
        if not services.settings.enable_multitenancy:
            return await call_next(request)

        subdomain: str | None = request.headers.get(TENANT_HEADER)
        if not subdomain:
            subdomain = _extract_subdomain_from_host(request.headers.get("host", ""), services.settings.app_domain)

        if subdomain:
            async with services.session_factory() as db:
                tenant = await tenant_service.get_tenant_by_subdomain(db, subdomain.lower())

            if tenant and tenant.status == TenantStatus.active.value:
                request.state.tenant_id = tenant.id
                request.state.tenant_subdomain = tenant.subdomain
                logger.debug("TenantMiddleware: resolved tenant_id=%d subdomain=%s", tenant.id, tenant.subdomain)
            else:
                logger.debug("TenantMiddleware: no active tenant for subdomain=%s", subdomain)

        return await call_next(request)
