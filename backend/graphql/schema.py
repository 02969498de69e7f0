"""
GraphQL Schema

Creates the Strawberry GraphQL schema for EventFlow.
"""

from typing import Optional

import strawberry
from strawberry.extensions import AddValidationRules, MaxTokensLimiter, QueryDepthLimiter

from eventflow.core.config import Config, get_config

from .complexity import create_complexity_rule
from .extensions import (
    ErrorLoggingExtension,
    LoaderScopeExtension,
    PerformanceMonitoringExtension,
)
from .mutations import Mutation
from .queries import Query
from .subscriptions import Subscription


def build_schema(config: Optional[Config] = None) -> strawberry.Schema:
    """Build the schema with limits taken from the ``graphql`` config section"""
    graphql_config = (config or get_config()).graphql

    return strawberry.Schema(
        query=Query,
        mutation=Mutation,
        subscription=Subscription,
        extensions=[
            # Caching: Fresh DataLoaders for every operation, also over WebSocket
            LoaderScopeExtension,

            # Security: Limit query depth to prevent deeply nested queries
            QueryDepthLimiter(max_depth=int(graphql_config.get('max_depth', 10))),

            # Security: Limit document size
            MaxTokensLimiter(max_token_count=int(graphql_config.get('max_tokens', 1000))),

            # Security: Limit estimated cost
            AddValidationRules([
                create_complexity_rule(int(graphql_config.get('max_complexity', 1000)))
            ]),

            # Monitoring: Track operation performance
            PerformanceMonitoringExtension,

            # Logging: Log errors with context
            ErrorLoggingExtension,
        ],
    )


schema = build_schema()
