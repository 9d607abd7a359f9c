"""
API routes for Sentinel.
"""

from sentinel.api.routes import admin, alerts, webhooks

__all__ = ["admin", "alerts", "webhooks"]
