"""Constants package for InboxDesk."""

from .auth import ADMIN_TOKEN_HEADER, ALGORITHM, SESSION_PRINCIPAL_KEY, CallerKind
from .plans import DEFAULT_FEATURES, DEFAULT_QUOTAS, VALID_FEATURES
from .tenancy import RESERVED_SUBDOMAINS, TENANT_HEADER, TENANT_SETTING_KEYS, subdomain_error

__all__ = [
    # Auth constants
    "ALGORITHM",
    "ADMIN_TOKEN_HEADER",
    "SESSION_PRINCIPAL_KEY",
    "CallerKind",
    # Plan constants
    "DEFAULT_FEATURES",
    "DEFAULT_QUOTAS",
    "VALID_FEATURES",
    # Tenancy constants
    "RESERVED_SUBDOMAINS",
    "TENANT_HEADER",
    "TENANT_SETTING_KEYS",
    "subdomain_error",
]
