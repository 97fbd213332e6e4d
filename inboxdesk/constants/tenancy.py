"""Subdomain rules for tenant resolution and creation."""

import re

TENANT_HEADER = "X-Tenant-Slug"

SUBDOMAIN_MIN_LENGTH = 3
SUBDOMAIN_MAX_LENGTH = 63
SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")

RESERVED_SUBDOMAINS = frozenset(
    {"www", "api", "admin", "app", "mail", "ftp", "localhost", "test", "staging", "dev", "prod"}
)

# Keys an admin may change through PUT /api/admin/settings/{key}
TENANT_SETTING_KEYS = frozenset(
    {"branding_name", "support_email", "default_locale", "default_timezone", "signup_enabled", "primary_color"}
)


def subdomain_error(subdomain: str) -> str | None:
    """Return why `subdomain` is unusable, or None when it is valid."""
    if not subdomain or len(subdomain) < SUBDOMAIN_MIN_LENGTH:
        return f"Subdomain must be at least {SUBDOMAIN_MIN_LENGTH} characters"
    if len(subdomain) > SUBDOMAIN_MAX_LENGTH:
        return f"Subdomain must be at most {SUBDOMAIN_MAX_LENGTH} characters"
    if not SUBDOMAIN_PATTERN.match(subdomain):
        return "Subdomain may only contain lowercase letters, numbers and hyphens, and cannot start or end with a hyphen"
    if "--" in subdomain:
        return "Subdomain cannot contain consecutive hyphens"
    if subdomain in RESERVED_SUBDOMAINS:
        return "This subdomain is reserved"
    return None
