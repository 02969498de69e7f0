"""
GraphQL request context.

A context is built for every HTTP request and for every WebSocket
connection. It carries the caller identity, the pub/sub channel and a
fresh DataLoader set, so cached entities never outlive one request.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi.requests import HTTPConnection
from strawberry.fastapi import BaseContext, GraphQLRouter

from backend.middleware.jwt_auth import CallerIdentity, get_user_from_token
from eventflow.core.pubsub import PubSub
from eventflow.utils.logger import get_logger

from .dataloaders import DataLoaders, create_dataloaders

logger = get_logger(__name__)


@dataclass
class GraphQLContext(BaseContext):
    """
    Request context for GraphQL operations.

    Example usage in resolver:
        @strawberry.field
        async def event(self, info: strawberry.Info, id: strawberry.ID) -> Event:
            return await info.context.loaders.event_by_id.load(id)
    """

    db: Any = None
    loaders: Optional[DataLoaders] = None
    pubsub: Optional[PubSub] = None
    user: Optional[CallerIdentity] = None

    # Filled in by strawberry
    request: Any = None
    response: Any = None
    background_tasks: Any = None
    connection_params: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def refresh_loaders(self) -> None:
        """Swap in an empty DataLoader set"""
        self.loaders = create_dataloaders(self.db)


def extract_authorization(connection_params: Optional[Dict[str, Any]]) -> Optional[str]:
    """Read the bearer credential sent in a WebSocket connection_init payload"""
    if not isinstance(connection_params, dict):
        return None
    return connection_params.get('authorization') or connection_params.get('Authorization')


def build_context(db, pubsub: PubSub, authorization: Optional[str] = None) -> GraphQLContext:
    """
    Build a context with a fresh DataLoader set.

    An invalid or missing credential yields an anonymous context; resolvers
    that need a user reject it themselves.
    """
    return GraphQLContext(
        db=db,
        loaders=create_dataloaders(db),
        pubsub=pubsub,
        user=get_user_from_token(authorization),
    )


async def get_context(connection: HTTPConnection) -> GraphQLContext:
    """
    FastAPI dependency used as the router's context_getter.

    Works for both HTTP requests and WebSocket connections; WebSocket
    clients authenticate later through connection params.
    """
    state = connection.app.state
    return build_context(
        state.mongo_manager.async_db,
        state.pubsub,
        connection.headers.get('authorization'),
    )


class EventFlowGraphQLRouter(GraphQLRouter):
    """GraphQLRouter that authenticates WebSocket clients on connection_init"""

    async def on_ws_connect(self, context):
        if isinstance(context, GraphQLContext):
            context.user = get_user_from_token(
                extract_authorization(context.connection_params)
            )
            if context.user:
                logger.info(f"🔌 WebSocket connection authenticated for {context.user.id}")
        return await super().on_ws_connect(context)
