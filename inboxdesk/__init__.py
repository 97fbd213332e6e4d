"""InboxDesk - multi-tenant WhatsApp inbox management backend."""

__version__ = "1.0.0"
