"""
GraphQL DataLoaders

Implements batch loading to prevent N+1 query problems.

Every ``load`` issued during one event-loop turn is collected into a single
call of the batch function, and results are cached per key for the rest of
the operation. A fresh set of loaders is built for every operation, so
nothing is ever shared between callers or between the operations of one
WebSocket connection.
"""

import functools
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from bson import ObjectId
from strawberry.dataloader import DataLoader

from eventflow.core.mongo_manager import EVENTS, USERS
from eventflow.utils.logger import get_logger

from .helpers import canonical_id, to_object_ids
from .types import Event, User

logger = get_logger(__name__)


class RequestLoader(DataLoader):
    """
    DataLoader that does not cache failures.

    A load that fails is dropped from the cache so a later load of the same
    key, within the same request, goes back to the database.
    """

    def load(self, key):
        future = super().load(key)
        if self.cache:
            future.add_done_callback(functools.partial(self._forget_failure, key))
        return future

    def _forget_failure(self, key, future) -> None:
        if future.cancelled() or future.exception() is None:
            return
        # Several loads of one key share a future and each adds this callback
        if self.cache_map.get(key) is future:
            self.clear(key)


def _distinct(object_ids: Dict[str, ObjectId]) -> List[ObjectId]:
    # "ab.." and "AB.." are two keys for the same document
    return list(dict.fromkeys(object_ids.values()))


async def load_users_batch(keys: List[str], db) -> List[Optional[User]]:
    """
    Batch load users by id.

    Args:
        keys: User ids
        db: MongoDB async database instance

    Returns:
        User (or None when unknown or malformed) for each key, in key order
    """
    object_ids = to_object_ids(keys)
    if not object_ids:
        return [None for _ in keys]

    logger.debug(f"📦 DataLoader: Batch loading {len(object_ids)} users")

    users: Dict[str, User] = {}
    async for doc in db[USERS].find({'_id': {'$in': _distinct(object_ids)}}):
        users[str(doc['_id'])] = User.from_document(doc)

    return [users.get(canonical_id(key)) for key in keys]


async def load_events_batch(keys: List[str], db) -> List[Optional[Event]]:
    """Batch load events by id (None when unknown or malformed)"""
    object_ids = to_object_ids(keys)
    if not object_ids:
        return [None for _ in keys]

    logger.debug(f"📦 DataLoader: Batch loading {len(object_ids)} events")

    events: Dict[str, Event] = {}
    async for doc in db[EVENTS].find({'_id': {'$in': _distinct(object_ids)}}):
        events[str(doc['_id'])] = Event.from_document(doc)

    return [events.get(canonical_id(key)) for key in keys]


async def load_user_events_batch(keys: List[str], db) -> List[List[Event]]:
    """
    Batch load the events created by each user.

    One query covers every requested creator; results are partitioned by
    creator and keep the newest-first order of the query.
    """
    object_ids = to_object_ids(keys)
    if not object_ids:
        return [[] for _ in keys]

    logger.debug(f"📦 DataLoader: Batch loading created events for {len(object_ids)} users")

    by_creator: Dict[str, List[Event]] = defaultdict(list)
    cursor = db[EVENTS].find(
        {'creator_id': {'$in': _distinct(object_ids)}}
    ).sort('created_at', -1)
    async for doc in cursor:
        by_creator[str(doc['creator_id'])].append(Event.from_document(doc))

    return [list(by_creator.get(canonical_id(key), [])) for key in keys]


async def load_user_attending_events_batch(keys: List[str], db) -> List[List[Event]]:
    """
    Batch load the events each user attends, soonest first.

    An event attended by several of the requested users is listed under
    every one of them.
    """
    object_ids = to_object_ids(keys)
    if not object_ids:
        return [[] for _ in keys]

    logger.debug(f"📦 DataLoader: Batch loading attended events for {len(object_ids)} users")

    wanted = {str(object_id) for object_id in object_ids.values()}
    by_attendee: Dict[str, List[Event]] = defaultdict(list)
    cursor = db[EVENTS].find(
        {'attendee_ids': {'$in': _distinct(object_ids)}}
    ).sort('date', 1)
    async for doc in cursor:
        event = Event.from_document(doc)
        for attendee_id in event.attendee_ids:
            if attendee_id in wanted:
                by_attendee[attendee_id].append(event)

    return [list(by_attendee.get(canonical_id(key), [])) for key in keys]


async def load_event_attendees_batch(keys: List[str], db) -> List[List[User]]:
    """
    Batch load the attendees of each event.

    Two queries regardless of batch size: one for the events, one for the
    union of their attendees. Attendees come back in the order they are
    stored on the event; ids with no matching user are skipped.
    """
    object_ids = to_object_ids(keys)
    if not object_ids:
        return [[] for _ in keys]

    logger.debug(f"📦 DataLoader: Batch loading attendees for {len(object_ids)} events")

    attendee_ids_by_event: Dict[str, List] = {}
    async for doc in db[EVENTS].find(
        {'_id': {'$in': _distinct(object_ids)}},
        {'attendee_ids': 1},
    ):
        attendee_ids_by_event[str(doc['_id'])] = doc.get('attendee_ids', [])

    all_attendee_ids = {
        attendee_id
        for attendee_ids in attendee_ids_by_event.values()
        for attendee_id in attendee_ids
    }

    users: Dict[str, User] = {}
    if all_attendee_ids:
        async for doc in db[USERS].find({'_id': {'$in': list(all_attendee_ids)}}):
            users[str(doc['_id'])] = User.from_document(doc)

    result = []
    for key in keys:
        attendees = [
            users[str(attendee_id)]
            for attendee_id in attendee_ids_by_event.get(canonical_id(key), [])
            if str(attendee_id) in users
        ]
        result.append(attendees)

    return result


@dataclass
class DataLoaders:
    """
    Per-request DataLoader set.

    Usage in resolver:
        user = await info.context.loaders.user_by_id.load(user_id)
    """
    user_by_id: RequestLoader
    event_by_id: RequestLoader
    user_events: RequestLoader
    user_attending_events: RequestLoader
    event_attendees: RequestLoader


def create_dataloaders(db) -> DataLoaders:
    """
    Create all DataLoaders with database context.

    Args:
        db: MongoDB async database instance

    Returns:
        DataLoaders with empty caches
    """
    return DataLoaders(
        user_by_id=RequestLoader(
            load_fn=lambda keys: load_users_batch(keys, db)
        ),
        event_by_id=RequestLoader(
            load_fn=lambda keys: load_events_batch(keys, db)
        ),
        user_events=RequestLoader(
            load_fn=lambda keys: load_user_events_batch(keys, db)
        ),
        user_attending_events=RequestLoader(
            load_fn=lambda keys: load_user_attending_events_batch(keys, db)
        ),
        event_attendees=RequestLoader(
            load_fn=lambda keys: load_event_attendees_batch(keys, db)
        ),
    )
