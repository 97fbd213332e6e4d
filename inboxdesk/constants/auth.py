"""
Authentication Constants
"""

import enum

ALGORITHM = "HS256"

# Session key holding {"kind": "agent"|"admin", "id": <int>}
SESSION_PRINCIPAL_KEY = "principal"

ADMIN_TOKEN_HEADER = "X-Admin-Token"


class CallerKind(str, enum.Enum):
    AGENT = "agent"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    SERVICE = "service"
