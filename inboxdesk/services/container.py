"""
Application service container.

Built once by `create_app` and stored on `app.state.services`; request
handlers reach shared collaborators through `get_services` instead of
module-level singletons.
"""

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inboxdesk.config import Settings
from inboxdesk.services.audit_service import AuditRecorder
from inboxdesk.services.stripe_service import StripeGateway
from inboxdesk.services.whatsapp_service import WhatsAppGateway


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    audit: AuditRecorder
    stripe: StripeGateway
    whatsapp: WhatsAppGateway

    @classmethod
    def build(cls, settings: Settings, session_factory: async_sessionmaker[AsyncSession]) -> "ServiceContainer":
        return cls(
            settings=settings,
            session_factory=session_factory,
            audit=AuditRecorder(session_factory),
            stripe=StripeGateway(settings.stripe_secret_key, settings.stripe_currency),
            whatsapp=WhatsAppGateway(
                settings.whatsapp_gateway_url,
                timeout=settings.whatsapp_gateway_timeout,
                admin_token=settings.whatsapp_gateway_admin_token,
            ),
        )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services
