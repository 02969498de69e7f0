"""
GraphQL Types

Defines Strawberry GraphQL types for EventFlow.
Relationship fields (creator, attendees, events, attendingEvents) are
resolved through the request's DataLoaders, never by direct queries.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import strawberry

from .pagination import Page


def ensure_datetime(value: Any) -> Optional[datetime]:
    """
    Ensure a value is converted to timezone-aware datetime object in UTC.

    MongoDB hands back naive datetimes that are already UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value.replace(tzinfo=timezone.utc)

    if isinstance(value, str):
        try:
            return ensure_datetime(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError:
            return None

    return None


@strawberry.type
class User:
    """
    Registered user.

    Corresponds to the 'users' collection in MongoDB.
    """
    id: strawberry.ID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["User"]:
        if doc is None:
            return None
        return cls(
            id=strawberry.ID(str(doc['_id'])),
            name=doc.get('name', ''),
            email=doc.get('email', ''),
            created_at=ensure_datetime(doc.get('created_at')),
            updated_at=ensure_datetime(doc.get('updated_at')),
        )

    @strawberry.field
    async def events(self, info: strawberry.Info) -> List["Event"]:
        """Events created by this user, newest first"""
        return await info.context.loaders.user_events.load(self.id)

    @strawberry.field
    async def attending_events(self, info: strawberry.Info) -> List["Event"]:
        """Events this user attends, soonest first"""
        return await info.context.loaders.user_attending_events.load(self.id)


@strawberry.type
class Event:
    """
    Event type.

    Corresponds to the 'events' collection in MongoDB. The creator and
    attendee references stay private and are only reachable through the
    relationship fields.
    """
    id: strawberry.ID
    title: str
    description: str
    date: datetime
    time: str
    location: str
    created_at: datetime
    updated_at: datetime
    creator_id: strawberry.Private[str]
    attendee_ids: strawberry.Private[List[str]]
    image_url: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["Event"]:
        if doc is None:
            return None
        return cls(
            id=strawberry.ID(str(doc['_id'])),
            title=doc.get('title', ''),
            description=doc.get('description', ''),
            date=ensure_datetime(doc.get('date')),
            time=doc.get('time', ''),
            location=doc.get('location', ''),
            image_url=doc.get('image_url'),
            created_at=ensure_datetime(doc.get('created_at')),
            updated_at=ensure_datetime(doc.get('updated_at')),
            creator_id=str(doc.get('creator_id')),
            attendee_ids=[str(a) for a in doc.get('attendee_ids', [])],
        )

    @strawberry.field
    async def creator(self, info: strawberry.Info) -> Optional[User]:
        return await info.context.loaders.user_by_id.load(self.creator_id)

    @strawberry.field
    async def attendees(self, info: strawberry.Info) -> List[User]:
        return await info.context.loaders.event_attendees.load(self.id)


@strawberry.type(name="PageInfo")
class PageInfoType:
    """Navigation data for a page of results"""
    has_next_page: bool
    has_previous_page: bool
    current_page: int
    total_pages: int


@strawberry.type
class EventConnection:
    edges: List[Event]
    page_info: PageInfoType
    total_count: int

    @classmethod
    def from_page(cls, page: Page) -> "EventConnection":
        return cls(
            edges=[Event.from_document(doc) for doc in page.items],
            page_info=PageInfoType(**vars(page.page_info)),
            total_count=page.total_count,
        )


@strawberry.type
class UserConnection:
    edges: List[User]
    page_info: PageInfoType
    total_count: int

    @classmethod
    def from_page(cls, page: Page) -> "UserConnection":
        return cls(
            edges=[User.from_document(doc) for doc in page.items],
            page_info=PageInfoType(**vars(page.page_info)),
            total_count=page.total_count,
        )


@strawberry.type
class AuthData:
    """Result of registration and login"""
    user_id: strawberry.ID
    token: str
    token_expiration: int  # days


@strawberry.input
class PaginationInput:
    page: Optional[int] = None
    limit: Optional[int] = None


@strawberry.input
class UserInput:
    name: str
    email: str
    password: str


@strawberry.input
class UpdateUserInput:
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


@strawberry.input
class EventInput:
    title: str
    description: str
    date: datetime
    time: str
    location: str
    image_url: Optional[str] = None


@dataclass
class UserEventPayload:
    """Pub/sub payload for attendance changes"""
    user: User
    event_id: str
