"""
GraphQL Queries

Defines the root Query type for EventFlow. List queries are paginated;
single lookups go through the request's DataLoaders.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import strawberry

from eventflow.core.config import get_config
from eventflow.core.mongo_manager import EVENTS, USERS

from .errors import NotFoundError, UserInputError, translate_errors
from .helpers import to_object_id
from .pagination import paginate_query
from .permissions import require_auth
from .types import Event, EventConnection, PaginationInput, User, UserConnection


async def _event_page(db, filter, sort, pagination) -> EventConnection:
    cursor = db[EVENTS].find(filter).sort(*sort)
    page = await paginate_query(
        cursor,
        db[EVENTS],
        filter,
        pagination,
        max_limit=get_config().pagination_max_limit,
    )
    return EventConnection.from_page(page)


@strawberry.type
class Query:
    """Root Query type for GraphQL API"""

    @strawberry.field
    async def users(
        self,
        info: strawberry.Info,
        pagination: Optional[PaginationInput] = None
    ) -> UserConnection:
        """All registered users"""
        db = info.context.db

        with translate_errors("Error fetching users"):
            page = await paginate_query(
                db[USERS].find({}),
                db[USERS],
                {},
                pagination,
                max_limit=get_config().pagination_max_limit,
            )
            return UserConnection.from_page(page)

    @strawberry.field
    async def user(self, info: strawberry.Info, id: strawberry.ID) -> Optional[User]:
        """Look up a user by id; null when there is no such user"""
        with translate_errors("Error fetching user"):
            return await info.context.loaders.user_by_id.load(id)

    @strawberry.field
    @require_auth
    async def me(self, info: strawberry.Info) -> User:
        """The authenticated caller"""
        with translate_errors("Error fetching user"):
            user = await info.context.loaders.user_by_id.load(info.context.user.id)
            if user is None:
                raise NotFoundError("User not found")
            return user

    @strawberry.field
    async def events(
        self,
        info: strawberry.Info,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """All events, newest first"""
        with translate_errors("Error fetching events"):
            return await _event_page(info.context.db, {}, ('created_at', -1), pagination)

    @strawberry.field
    async def event(self, info: strawberry.Info, id: strawberry.ID) -> Event:
        with translate_errors("Error fetching event"):
            event = await info.context.loaders.event_by_id.load(id)
            if event is None:
                raise NotFoundError("Event not found")
            return event

    @strawberry.field
    async def events_by_date(
        self,
        info: strawberry.Info,
        date: date,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """
        Events happening on a calendar day (UTC), ordered by start time.
        """
        start = datetime.combine(date, time.min, tzinfo=timezone.utc)
        filter = {'date': {'$gte': start, '$lt': start + timedelta(days=1)}}

        with translate_errors("Error fetching events by date"):
            return await _event_page(info.context.db, filter, ('time', 1), pagination)

    @strawberry.field
    async def events_by_location(
        self,
        info: strawberry.Info,
        location: str,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """Case-insensitive substring search on location, soonest first"""
        filter = {'location': {'$regex': re.escape(location.strip()), '$options': 'i'}}

        with translate_errors("Error fetching events by location"):
            return await _event_page(info.context.db, filter, ('date', 1), pagination)

    @strawberry.field
    async def events_by_user(
        self,
        info: strawberry.Info,
        user_id: strawberry.ID,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """Events created by a user, newest first"""
        creator_id = to_object_id(user_id)
        if creator_id is None:
            raise UserInputError("Invalid user ID")

        with translate_errors("Error fetching events by user"):
            return await _event_page(
                info.context.db, {'creator_id': creator_id}, ('created_at', -1), pagination
            )

    @strawberry.field
    @require_auth
    async def my_events(
        self,
        info: strawberry.Info,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """Events created by the caller, newest first"""
        filter = {'creator_id': to_object_id(info.context.user.id)}

        with translate_errors("Error fetching your events"):
            return await _event_page(info.context.db, filter, ('created_at', -1), pagination)

    @strawberry.field
    @require_auth
    async def my_attending_events(
        self,
        info: strawberry.Info,
        pagination: Optional[PaginationInput] = None
    ) -> EventConnection:
        """Events the caller attends, soonest first"""
        filter = {'attendee_ids': to_object_id(info.context.user.id)}

        with translate_errors("Error fetching events you are attending"):
            return await _event_page(info.context.db, filter, ('date', 1), pagination)
