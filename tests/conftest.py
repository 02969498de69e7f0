import copy
import itertools
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from backend.graphql import schema
from backend.graphql.context import build_context
from backend.middleware.jwt_auth import create_access_token
from eventflow.core.mongo_manager import EVENTS, USERS
from eventflow.core.pubsub import PubSub

UNIQUE_FIELDS = {USERS: ("email",)}

BASE_TIME = datetime(2030, 1, 1, tzinfo=timezone.utc)


# ----------------------------------------------------------------------
# In-memory stand-in for a Motor database
# ----------------------------------------------------------------------

def _compare(value, operator, operand):
    if operator == "$in":
        if isinstance(value, list):
            return any(v in operand for v in value)
        return value in operand
    if operator == "$ne":
        return value != operand
    if operator == "$gte":
        return value is not None and value >= operand
    if operator == "$gt":
        return value is not None and value > operand
    if operator == "$lte":
        return value is not None and value <= operand
    if operator == "$lt":
        return value is not None and value < operand
    raise NotImplementedError(operator)


def matches(doc, filter):
    for field, condition in (filter or {}).items():
        value = doc.get(field)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            if "$regex" in condition:
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if value is None or not re.search(condition["$regex"], value, flags):
                    return False
            for operator, operand in condition.items():
                if operator in ("$regex", "$options"):
                    continue
                if not _compare(value, operator, operand):
                    return False
        elif isinstance(value, list) and not isinstance(condition, list):
            if condition not in value:
                return False
        elif value != condition:
            return False
    return True


def apply_update(doc, update):
    for field, value in update.get("$set", {}).items():
        doc[field] = value
    for field, value in update.get("$addToSet", {}).items():
        values = doc.setdefault(field, [])
        if value not in values:
            values.append(value)
    for field, value in update.get("$pull", {}).items():
        doc[field] = [v for v in doc.get(field, []) if v != value]


class FakeCursor:
    def __init__(self, collection, filter):
        self._collection = collection
        self._filter = filter
        self._sort = []
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        if isinstance(key, list):
            self._sort.extend(key)
        else:
            self._sort.append((key, direction))
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _execute(self):
        docs = self._collection._query("find", self._filter)
        for key, direction in reversed(self._sort):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        docs = docs[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        return docs

    async def to_list(self, length=None):
        docs = self._execute()
        return docs if length is None else docs[:length]

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._execute():
            yield doc


class FakeCollection:
    def __init__(self, name, database, unique=()):
        self.name = name
        self.database = database
        self.unique = unique
        self.documents = []

    def _query(self, operation, filter):
        self.database._record(self.name, operation, filter)
        return [copy.deepcopy(d) for d in self.documents if matches(d, filter)]

    def _check_unique(self, doc):
        for field in self.unique:
            for other in self.documents:
                if other["_id"] != doc["_id"] and other.get(field) == doc.get(field):
                    raise DuplicateKeyError(f"duplicate key: {field}")

    def _find_stored(self, filter):
        return next((d for d in self.documents if matches(d, filter)), None)

    def find(self, filter=None, projection=None):
        return FakeCursor(self, filter or {})

    async def find_one(self, filter=None):
        docs = self._query("find_one", filter or {})
        return docs[0] if docs else None

    async def count_documents(self, filter):
        return len(self._query("count_documents", filter))

    async def insert_one(self, doc):
        self.database._record(self.name, "insert_one", doc)
        doc.setdefault("_id", ObjectId())
        self._check_unique(doc)
        self.documents.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def update_one(self, filter, update):
        self.database._record(self.name, "update_one", filter)
        stored = self._find_stored(filter)
        if stored is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        apply_update(stored, update)
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def find_one_and_update(self, filter, update, return_document=ReturnDocument.BEFORE):
        self.database._record(self.name, "find_one_and_update", filter)
        stored = self._find_stored(filter)
        if stored is None:
            return None
        before = copy.deepcopy(stored)
        updated = copy.deepcopy(stored)
        apply_update(updated, update)
        self._check_unique(updated)
        stored.clear()
        stored.update(updated)
        return copy.deepcopy(stored) if return_document == ReturnDocument.AFTER else before

    async def delete_one(self, filter):
        self.database._record(self.name, "delete_one", filter)
        stored = self._find_stored(filter)
        if stored is None:
            return SimpleNamespace(deleted_count=0)
        self.documents.remove(stored)
        return SimpleNamespace(deleted_count=1)

    async def create_index(self, keys, **options):
        return keys


class FakeDatabase:
    """
    Motor-compatible database double.

    Every executed operation is recorded in ``queries`` as
    ``(collection, operation, filter)``. ``fail_next_query`` makes the next
    matching operation raise.
    """

    def __init__(self):
        self.collections = {}
        self.queries = []
        self._failures = []

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, self, UNIQUE_FIELDS.get(name, ()))
        return self.collections[name]

    def fail_next_query(self, error, operation=None):
        self._failures.append((operation, error))

    def _record(self, collection, operation, filter):
        self.queries.append((collection, operation, filter))
        for index, (failing_operation, error) in enumerate(self._failures):
            if failing_operation in (None, operation):
                del self._failures[index]
                raise error

    def find_calls(self, collection=None):
        return [
            q for q in self.queries
            if q[1] == "find" and (collection is None or q[0] == collection)
        ]

    async def command(self, name):
        return {"ok": 1}


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def pubsub():
    return PubSub()


@pytest.fixture
def add_user(db):
    """Insert a user document directly, bypassing the query log"""
    clock = itertools.count()

    def _add(name="Alice", email=None, **fields):
        created = BASE_TIME + timedelta(minutes=next(clock))
        doc = {
            "_id": ObjectId(),
            "name": name,
            "email": email or f"{name.lower()}@example.com",
            "password_hash": "not-a-bcrypt-hash",
            "created_at": created,
            "updated_at": created,
        }
        doc.update(fields)
        db[USERS].documents.append(doc)
        return doc

    return _add


@pytest.fixture
def add_event(db):
    """Insert an event document directly, bypassing the query log"""
    clock = itertools.count()

    def _add(creator, title="Event", attendees=(), **fields):
        created = BASE_TIME + timedelta(minutes=next(clock))
        doc = {
            "_id": ObjectId(),
            "title": title,
            "description": f"{title} description",
            "date": BASE_TIME + timedelta(days=10),
            "time": "18:00",
            "location": "Berlin",
            "image_url": None,
            "creator_id": creator["_id"],
            "attendee_ids": [a["_id"] for a in attendees],
            "created_at": created,
            "updated_at": created,
        }
        doc.update(fields)
        db[EVENTS].documents.append(doc)
        return doc

    return _add


@pytest.fixture
def make_context(db, pubsub):
    """Build a request context, authenticated as ``user_doc`` when given"""

    def _make(user_doc=None):
        authorization = None
        if user_doc is not None:
            token = create_access_token({"id": str(user_doc["_id"]), "email": user_doc["email"]})
            authorization = f"Bearer {token}"
        return build_context(db, pubsub, authorization)

    return _make


@pytest.fixture
def execute(make_context):
    """Run an operation against the schema as ``user`` (anonymous by default)"""

    async def _execute(query, user=None, **variables):
        return await schema.execute(
            query,
            variable_values=variables or None,
            context_value=make_context(user),
        )

    return _execute
