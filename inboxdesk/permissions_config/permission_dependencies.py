from fastapi import Depends

from inboxdesk.auth import CallerContext, require_agent
from inboxdesk.exceptions import PermissionDeniedError
from inboxdesk.permissions_config.permissions import has_permission


def permission_required(permission: str):
    """Dependency factory: the agent caller must hold `permission`."""

    async def checker(caller: CallerContext = Depends(require_agent)) -> CallerContext:
        if has_permission(caller.permissions, permission):
            return caller
        raise PermissionDeniedError(
            message="You don't have permission to perform this action.",
            required_permission=permission,
        )

    return checker
