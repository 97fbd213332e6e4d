from .account import Account, AccountStatus
from .admin_user import AdminRole, AdminUser
from .agent import Agent, AgentStatus
from .api_key import ApiKey
from .audit_log import AuditAction, AuditLogEntry
from .custom_field import CustomField, FieldType
from .inbox import Inbox, InboxMember, InboxStatus
from .job import Job, JobStatus, JobType
from .plan import BillingCycle, Plan, PlanStatus, Subscription, SubscriptionStatus
from .role import CustomRole
from .team import Team, TeamMember, TeamMemberRole
from .tenant import Tenant, TenantStatus

__all__ = [
    "Account",
    "AccountStatus",
    "AdminRole",
    "AdminUser",
    "Agent",
    "AgentStatus",
    "ApiKey",
    "AuditAction",
    "AuditLogEntry",
    "BillingCycle",
    "CustomField",
    "CustomRole",
    "FieldType",
    "Inbox",
    "InboxMember",
    "InboxStatus",
    "Job",
    "JobStatus",
    "JobType",
    "Plan",
    "PlanStatus",
    "Subscription",
    "SubscriptionStatus",
    "Team",
    "TeamMember",
    "TeamMemberRole",
    "Tenant",
    "TenantStatus",
]
