"""
Resolver helpers shared by queries and mutations.
"""

from typing import Any, Dict, Iterable, Optional

from bson import ObjectId

from eventflow.core.mongo_manager import EVENTS

from .errors import ForbiddenError, UserInputError


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId"""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def canonical_id(value: Any) -> Optional[str]:
    """Lowercase hex form of an id, as stored; None when malformed"""
    object_id = to_object_id(value)
    return str(object_id) if object_id is not None else None


def to_object_ids(values: Iterable[Any]) -> Dict[str, ObjectId]:
    """Map each well-formed id (as str) to its ObjectId, dropping the rest"""
    parsed = {}
    for value in values:
        object_id = to_object_id(value)
        if object_id is not None:
            parsed[str(value)] = object_id
    return parsed


async def find_event_or_raise(db, event_id: str) -> Dict[str, Any]:
    """Fetch an event document for a mutation, rejecting bad or unknown ids"""
    object_id = to_object_id(event_id)
    if object_id is None:
        raise UserInputError("Event not found")

    doc = await db[EVENTS].find_one({'_id': object_id})
    if doc is None:
        raise UserInputError("Event not found")
    return doc


def check_is_creator(event_doc: Dict[str, Any], user_id: str, action: str) -> None:
    if str(event_doc.get('creator_id')) != user_id:
        raise ForbiddenError(f"Not authorized to {action} this event")
