"""
GraphQL Mutations

Defines the root Mutation type for EventFlow: account management, event
CRUD and attendance. Event changes are published for subscriptions.
"""

from typing import Optional

import strawberry
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from backend.middleware.jwt_auth import (
    TOKEN_EXPIRATION_DAYS,
    create_access_token,
    hash_password,
    verify_password,
)
from eventflow.core.mongo_manager import EVENTS, USERS
from eventflow.core.pubsub import Topics
from eventflow.models.mongo_models import (
    EventDocument,
    UserDocument,
    normalize_email,
    required_text,
    utcnow,
    validation_message,
)
from eventflow.utils.logger import get_logger

from .errors import (
    InvalidCredentials,
    NotFoundError,
    UserInputError,
    translate_errors,
)
from .helpers import check_is_creator, find_event_or_raise, to_object_id
from .permissions import require_auth
from .types import (
    AuthData,
    Event,
    EventInput,
    UpdateUserInput,
    User,
    UserEventPayload,
    UserInput,
    ensure_datetime,
)

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise UserInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def _auth_data(user_id, email: str) -> AuthData:
    token = create_access_token({'id': str(user_id), 'email': email})
    return AuthData(
        user_id=strawberry.ID(str(user_id)),
        token=token,
        token_expiration=TOKEN_EXPIRATION_DAYS,
    )


def _event_document(event_input: EventInput, creator_id: str, attendee_ids=()) -> EventDocument:
    try:
        return EventDocument(
            title=event_input.title,
            description=event_input.description,
            date=ensure_datetime(event_input.date),
            time=event_input.time,
            location=event_input.location,
            image_url=event_input.image_url,
            creator_id=creator_id,
            attendee_ids=list(attendee_ids),
        )
    except ValidationError as e:
        raise UserInputError(validation_message(e)) from e


async def _publish_attendance(info, topic: str, event_id) -> Optional[User]:
    user = await info.context.loaders.user_by_id.load(info.context.user.id)
    if user is not None:
        info.context.pubsub.publish(topic, UserEventPayload(user=user, event_id=str(event_id)))
    return user


@strawberry.type
class Mutation:
    """Root Mutation type for GraphQL API"""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @strawberry.mutation
    async def create_user(self, info: strawberry.Info, user_input: UserInput) -> AuthData:
        """
        Register a new account and sign it in.

        Returns:
            AuthData with a token valid for TOKEN_EXPIRATION_DAYS
        """
        db = info.context.db

        with translate_errors("Error creating user"):
            _check_password(user_input.password)
            try:
                document = UserDocument(
                    name=user_input.name,
                    email=user_input.email,
                    password_hash="",
                )
            except ValidationError as e:
                raise UserInputError(validation_message(e)) from e

            if await db[USERS].find_one({'email': document.email}):
                raise UserInputError("User already exists")

            document.password_hash = await run_in_threadpool(hash_password, user_input.password)
            try:
                result = await db[USERS].insert_one(document.to_mongo())
            except DuplicateKeyError as e:
                raise UserInputError("User already exists") from e

            logger.info(f"👤 User created: {result.inserted_id}")
            return _auth_data(result.inserted_id, document.email)

    @strawberry.mutation
    async def login(self, info: strawberry.Info, email: str, password: str) -> AuthData:
        db = info.context.db

        with translate_errors("Error logging in"):
            doc = await db[USERS].find_one({'email': email.strip().lower()})
            if doc is None or not await run_in_threadpool(
                verify_password, password, doc.get('password_hash', '')
            ):
                raise InvalidCredentials()

            return _auth_data(doc['_id'], doc['email'])

    @strawberry.mutation
    @require_auth
    async def update_user(self, info: strawberry.Info, update_user_input: UpdateUserInput) -> User:
        """Update the caller's profile. Omitted fields are left unchanged."""
        db = info.context.db
        user_id = to_object_id(info.context.user.id)

        with translate_errors("Error updating user"):
            updates = {}
            try:
                if update_user_input.name is not None:
                    updates['name'] = required_text(update_user_input.name)
                if update_user_input.email is not None:
                    updates['email'] = normalize_email(update_user_input.email)
            except ValueError as e:
                raise UserInputError(str(e)) from e

            if update_user_input.password is not None:
                _check_password(update_user_input.password)
                updates['password_hash'] = await run_in_threadpool(
                    hash_password, update_user_input.password
                )

            if 'email' in updates:
                taken = await db[USERS].find_one(
                    {'email': updates['email'], '_id': {'$ne': user_id}}
                )
                if taken:
                    raise UserInputError("Email is already in use")

            updates['updated_at'] = utcnow()
            try:
                doc = await db[USERS].find_one_and_update(
                    {'_id': user_id},
                    {'$set': updates},
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError as e:
                raise UserInputError("Email is already in use") from e

            if doc is None:
                raise NotFoundError("User not found")
            return User.from_document(doc)

    @strawberry.mutation
    @require_auth
    async def delete_user(self, info: strawberry.Info) -> bool:
        db = info.context.db

        with translate_errors("Error deleting user"):
            result = await db[USERS].delete_one({'_id': to_object_id(info.context.user.id)})
            if result.deleted_count == 0:
                raise NotFoundError("User not found")

            logger.info(f"🗑️ User deleted: {info.context.user.id}")
            return True

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @strawberry.mutation
    @require_auth
    async def create_event(self, info: strawberry.Info, event_input: EventInput) -> Event:
        """Create an event owned by the caller, with no attendees"""
        db = info.context.db

        with translate_errors("Error creating event"):
            document = _event_document(event_input, info.context.user.id)
            doc = document.to_mongo()
            result = await db[EVENTS].insert_one(doc)
            doc['_id'] = result.inserted_id

            event = Event.from_document(doc)
            info.context.pubsub.publish(Topics.EVENT_CREATED, event)
            return event

    @strawberry.mutation
    @require_auth
    async def update_event(self, info: strawberry.Info, id: strawberry.ID, event_input: EventInput) -> Event:
        """Replace an event's details. Only the creator may do this."""
        db = info.context.db

        with translate_errors("Error updating event"):
            existing = await find_event_or_raise(db, id)
            check_is_creator(existing, info.context.user.id, "update")

            document = _event_document(
                event_input,
                str(existing['creator_id']),
                [str(a) for a in existing.get('attendee_ids', [])],
            )
            updates = document.model_dump(
                include={'title', 'description', 'date', 'time', 'location', 'image_url'}
            )
            updates['updated_at'] = utcnow()

            doc = await db[EVENTS].find_one_and_update(
                {'_id': existing['_id']},
                {'$set': updates},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                raise UserInputError("Event not found")

            event = Event.from_document(doc)
            info.context.pubsub.publish(Topics.EVENT_UPDATED, event)
            return event

    @strawberry.mutation
    @require_auth
    async def delete_event(self, info: strawberry.Info, id: strawberry.ID) -> bool:
        db = info.context.db

        with translate_errors("Error deleting event"):
            existing = await find_event_or_raise(db, id)
            check_is_creator(existing, info.context.user.id, "delete")

            await db[EVENTS].delete_one({'_id': existing['_id']})

            info.context.pubsub.publish(Topics.EVENT_DELETED, str(existing['_id']))
            return True

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    @strawberry.mutation
    @require_auth
    async def attend_event(self, info: strawberry.Info, event_id: strawberry.ID) -> Event:
        db = info.context.db
        user_id = to_object_id(info.context.user.id)

        with translate_errors("Error attending event"):
            existing = await find_event_or_raise(db, event_id)
            if user_id in existing.get('attendee_ids', []):
                raise UserInputError("Already attending this event")

            doc = await db[EVENTS].find_one_and_update(
                {'_id': existing['_id']},
                {'$addToSet': {'attendee_ids': user_id}, '$set': {'updated_at': utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                raise UserInputError("Event not found")

            await _publish_attendance(info, Topics.USER_JOINED_EVENT, doc['_id'])
            return Event.from_document(doc)

    @strawberry.mutation
    @require_auth
    async def cancel_attendance(self, info: strawberry.Info, event_id: strawberry.ID) -> Event:
        db = info.context.db
        user_id = to_object_id(info.context.user.id)

        with translate_errors("Error cancelling attendance"):
            existing = await find_event_or_raise(db, event_id)
            if user_id not in existing.get('attendee_ids', []):
                raise UserInputError("Not attending this event")

            doc = await db[EVENTS].find_one_and_update(
                {'_id': existing['_id']},
                {'$pull': {'attendee_ids': user_id}, '$set': {'updated_at': utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                raise UserInputError("Event not found")

            await _publish_attendance(info, Topics.USER_LEFT_EVENT, doc['_id'])
            return Event.from_document(doc)
