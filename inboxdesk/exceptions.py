"""
Custom Exception Classes for InboxDesk

Every error the API can return is one of these types. Handlers in
`inboxdesk.exception_handlers` branch on the type (never on the message)
to pick the HTTP status and the machine-readable `code` of the envelope.
"""

import enum
from typing import Any

from fastapi import status


class ErrorCode(str, enum.Enum):
    """Machine-readable error codes returned in the `code` field."""

    # Validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"

    # Authentication & authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    TENANT_CONTEXT_REQUIRED = "TENANT_CONTEXT_REQUIRED"
    TENANT_MISMATCH = "TENANT_MISMATCH"
    TENANT_INACTIVE = "TENANT_INACTIVE"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # Not found
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    TENANT_NOT_FOUND = "TENANT_NOT_FOUND"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    INBOX_NOT_FOUND = "INBOX_NOT_FOUND"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    ROLE_NOT_FOUND = "ROLE_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
    API_KEY_NOT_FOUND = "API_KEY_NOT_FOUND"
    CUSTOM_FIELD_NOT_FOUND = "CUSTOM_FIELD_NOT_FOUND"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"

    # Conflict
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
    HAS_DEPENDENTS = "HAS_DEPENDENTS"
    ALREADY_IN_STATE = "ALREADY_IN_STATE"

    # Upstream & internal
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    STRIPE_NOT_CONFIGURED = "STRIPE_NOT_CONFIGURED"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class InboxDeskError(Exception):
    """Base exception class for all InboxDesk errors"""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


# ============================================================================
# Validation
# ============================================================================


class ValidationError(InboxDeskError):
    """Raised when input validation fails"""

    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        field: str | None = None,
        error_code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code=error_code,
            details=error_details,
        )


# ============================================================================
# Authentication & Authorization
# ============================================================================


class AuthenticationError(InboxDeskError):
    """Raised when no valid credential accompanies the request"""

    default_code = ErrorCode.AUTH_REQUIRED

    def __init__(self, message: str = "Authentication required", error_code: ErrorCode | None = None):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED, error_code=error_code)


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message=message, error_code=ErrorCode.AUTH_INVALID_CREDENTIALS)


class InvalidTokenError(AuthenticationError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message=message, error_code=ErrorCode.AUTH_INVALID_TOKEN)


class PermissionDeniedError(InboxDeskError):
    """Raised when the caller's role or tenant does not allow the action"""

    default_code = ErrorCode.PERMISSION_DENIED

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        required_permission: str | None = None,
        error_code: ErrorCode | None = None,
    ):
        details = {"required_permission": required_permission} if required_permission else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code=error_code,
            details=details,
        )


class QuotaExceededError(InboxDeskError):
    """Raised when a plan quota would be exceeded by a create"""

    default_code = ErrorCode.QUOTA_EXCEEDED

    def __init__(self, quota: str, limit: int, current: int):
        super().__init__(
            message=f"Plan limit reached for {quota}. Upgrade your plan.",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"quota": quota, "limit": limit, "current": current},
        )


# ============================================================================
# Not Found
# ============================================================================


class ResourceNotFoundError(InboxDeskError):
    """Raised when a resource does not exist for the caller"""

    default_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, error_code: ErrorCode | None = None):
        super().__init__(
            message=f"{resource_type} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code=error_code,
        )
        self.resource_type = resource_type


class TenantMismatchError(ResourceNotFoundError):
    """
    Raised when a resource exists but belongs to another tenant/account.

    Renders exactly like ResourceNotFoundError so existence never leaks
    across tenants. The owner ids are kept on the instance for logging only.
    """

    def __init__(self, resource_type: str, error_code: ErrorCode | None = None, owner_id: Any = None):
        super().__init__(resource_type=resource_type, error_code=error_code)
        self.owner_id = owner_id


# ============================================================================
# Conflict
# ============================================================================


class ConflictError(InboxDeskError):
    """Base class for 409 responses"""

    default_code = ErrorCode.DUPLICATE_RESOURCE

    def __init__(self, message: str, error_code: ErrorCode | None = None, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            details=details,
        )


class DuplicateResourceError(ConflictError):
    """Raised when attempting to create a duplicate resource"""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.DUPLICATE_RESOURCE,
            details={"field": field} if field else None,
        )


class HasDependentsError(ConflictError):
    """Raised when a delete is blocked by rows that still reference the target"""

    def __init__(self, message: str, dependents: int):
        super().__init__(message=message, error_code=ErrorCode.HAS_DEPENDENTS, details={"dependents": dependents})


class AlreadyInStateError(ConflictError):
    def __init__(self, resource_type: str, state: str):
        super().__init__(
            message=f"{resource_type} is already {state}",
            error_code=ErrorCode.ALREADY_IN_STATE,
            details={"state": state},
        )


# ============================================================================
# Upstream & Internal
# ============================================================================


class UpstreamError(InboxDeskError):
    """Raised when an external API (Stripe, WhatsApp gateway) fails"""

    default_code = ErrorCode.UPSTREAM_ERROR

    def __init__(self, message: str, service: str, error_code: ErrorCode | None = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code=error_code,
            details={"service": service},
        )


class InternalError(InboxDeskError):
    def __init__(self, message: str = "An unexpected error occurred. Please try again later."):
        super().__init__(message=message)
