"""
GraphQL Subscriptions

Real-time notifications for event changes, delivered from the in-process
pub/sub channel. Each delivery starts from an empty DataLoader cache so
relationship fields reflect the state at delivery time.
"""

from contextlib import aclosing
from typing import AsyncGenerator, Optional

import strawberry

from eventflow.core.pubsub import Topics

from .types import Event, User


@strawberry.type
class Subscription:
    """Root Subscription type for GraphQL API"""

    @strawberry.subscription
    async def event_created(self, info: strawberry.Info) -> AsyncGenerator[Event, None]:
        async with aclosing(info.context.pubsub.subscribe(Topics.EVENT_CREATED)) as events:
            async for event in events:
                info.context.refresh_loaders()
                yield event

    @strawberry.subscription
    async def event_updated(
        self,
        info: strawberry.Info,
        event_id: Optional[strawberry.ID] = None
    ) -> AsyncGenerator[Event, None]:
        """Updates to one event, or to every event when no id is given"""
        async with aclosing(info.context.pubsub.subscribe(Topics.EVENT_UPDATED)) as events:
            async for event in events:
                if event_id and event.id != event_id:
                    continue
                info.context.refresh_loaders()
                yield event

    @strawberry.subscription
    async def event_deleted(self, info: strawberry.Info) -> AsyncGenerator[strawberry.ID, None]:
        async with aclosing(info.context.pubsub.subscribe(Topics.EVENT_DELETED)) as deleted:
            async for event_id in deleted:
                yield strawberry.ID(event_id)

    @strawberry.subscription
    async def user_joined_event(
        self,
        info: strawberry.Info,
        event_id: strawberry.ID
    ) -> AsyncGenerator[User, None]:
        async with aclosing(info.context.pubsub.subscribe(Topics.USER_JOINED_EVENT)) as joins:
            async for payload in joins:
                if payload.event_id != event_id:
                    continue
                info.context.refresh_loaders()
                yield payload.user

    @strawberry.subscription
    async def user_left_event(
        self,
        info: strawberry.Info,
        event_id: strawberry.ID
    ) -> AsyncGenerator[User, None]:
        async with aclosing(info.context.pubsub.subscribe(Topics.USER_LEFT_EVENT)) as leaves:
            async for payload in leaves:
                if payload.event_id != event_id:
                    continue
                info.context.refresh_loaders()
                yield payload.user
