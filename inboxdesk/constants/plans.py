"""Plan quota and feature defaults."""

VALID_FEATURES = (
    "bulk_campaigns",
    "nocodb_integration",
    "bot_automation",
    "advanced_reports",
    "api_access",
    "webhooks",
    "scheduled_messages",
    "media_storage",
)

DEFAULT_FEATURES = {
    "bulk_campaigns": False,
    "nocodb_integration": False,
    "bot_automation": False,
    "advanced_reports": False,
    "api_access": True,
    "webhooks": True,
    "scheduled_messages": False,
    "media_storage": True,
}

DEFAULT_QUOTAS = {
    "max_agents": 1,
    "max_connections": 1,
    "max_messages_per_day": 100,
    "max_messages_per_month": 3000,
    "max_inboxes": 1,
    "max_teams": 1,
    "max_webhooks": 5,
    "max_campaigns": 1,
    "max_storage_mb": 100,
    "max_bots": 3,
    "max_bot_calls_per_day": 100,
    "max_bot_calls_per_month": 3000,
    "max_bot_messages_per_day": 50,
    "max_bot_messages_per_month": 1500,
    "max_bot_tokens_per_day": 10000,
    "max_bot_tokens_per_month": 300000,
}

# Quotas enforced on create
QUOTA_MAX_INBOXES = "max_inboxes"
QUOTA_MAX_TEAMS = "max_teams"
QUOTA_MAX_AGENTS = "max_agents"
