"""Building blocks for a multi-tenant admin backend: IDs, identity context, RBAC, tokens, caches, cron, websockets and storage."""

__version__ = "0.1.0"