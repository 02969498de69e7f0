"""
GraphQL API Module

Strawberry GraphQL implementation for EventFlow: events, users,
attendance and real-time notifications.
"""

from .schema import build_schema, schema

__all__ = ["build_schema", "schema"]
