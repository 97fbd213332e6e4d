"""
Default roles and the permission catalogue.

Default roles are process-wide constants; account-specific roles are stored
as CustomRole rows and may only use permissions from AVAILABLE_PERMISSIONS.
"""

WILDCARD = "*"

AVAILABLE_PERMISSIONS = [
    "conversations:view",
    "conversations:create",
    "conversations:assign",
    "conversations:delete",
    "messages:send",
    "messages:delete",
    "contacts:view",
    "contacts:create",
    "contacts:edit",
    "contacts:delete",
    "agents:view",
    "agents:create",
    "agents:edit",
    "agents:delete",
    "teams:view",
    "teams:manage",
    "inboxes:view",
    "inboxes:manage",
    "settings:view",
    "settings:edit",
    "webhooks:manage",
    "integrations:manage",
    "reports:view",
    "api_keys:manage",
    "custom_fields:manage",
]

DEFAULT_ROLES = {
    "owner": {
        "description": "Full access to the account",
        "permissions": [WILDCARD],
    },
    "administrator": {
        "description": "Manages agents, teams, inboxes and settings",
        "permissions": [
            "conversations:view", "conversations:create", "conversations:assign", "conversations:delete",
            "messages:send", "messages:delete",
            "contacts:view", "contacts:create", "contacts:edit", "contacts:delete",
            "agents:view", "agents:create", "agents:edit", "agents:delete",
            "teams:view", "teams:manage",
            "inboxes:view", "inboxes:manage",
            "settings:view", "settings:edit",
            "reports:view",
        ],
    },
    "agent": {
        "description": "Handles conversations",
        "permissions": [
            "conversations:view", "conversations:create", "conversations:assign",
            "messages:send",
            "contacts:view", "contacts:create", "contacts:edit",
        ],
    },
    "viewer": {
        "description": "Read-only access",
        "permissions": ["conversations:view", "contacts:view", "reports:view"],
    },
}

OWNER_ROLE = "owner"
DEFAULT_AGENT_ROLE = "agent"


def get_role_permissions(role: str) -> list[str]:
    """
    Returns the permissions for a default role.
    """
    if role not in DEFAULT_ROLES:
        raise ValueError(f"Invalid role: {role}")
    return list(DEFAULT_ROLES[role]["permissions"])


def has_permission(granted: list[str] | tuple[str, ...], permission: str) -> bool:
    return WILDCARD in granted or permission in granted


def invalid_permissions(permissions: list[str]) -> list[str]:
    """Return the entries of `permissions` that are not in the catalogue."""
    allowed = set(AVAILABLE_PERMISSIONS)
    return [p for p in permissions if p not in allowed]
