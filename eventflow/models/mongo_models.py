"""
MongoDB Models

Pydantic models for the documents stored in the ``users`` and ``events``
collections. They validate and normalize data on the write path; reads go
straight from raw documents to GraphQL types.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, ValidationError, field_validator

EMAIL_PATTERN = re.compile(r".+@.+\..+")
TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Custom type for MongoDB ObjectId (Pydantic v2 compatible)
class PyObjectId(str):
    """Custom ObjectId type for Pydantic v2"""

    @classmethod
    def __get_pydantic_core_schema__(cls, _source_type, _handler):
        from pydantic_core import core_schema

        def validate(value):
            if isinstance(value, ObjectId):
                return str(value)
            if isinstance(value, str):
                if not ObjectId.is_valid(value):
                    raise ValueError(f"Invalid ObjectId: {value}")
                return value
            raise ValueError(f"Expected ObjectId or str, got {type(value)}")

        return core_schema.no_info_before_validator_function(
            validate,
            core_schema.str_schema(),
        )


def required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address")
    return value


def validation_message(error: ValidationError) -> str:
    """First readable message of a pydantic ValidationError"""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value").replace("Value error, ", "")
    return f"{field}: {message}" if field else message


class UserDocument(BaseModel):
    """
    User document

    Email is stored trimmed and lower-cased; the unique index on it makes
    lookups case-insensitive.
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str
    email: str
    password_hash: str

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        populate_by_name = True
        arbitrary_types_allowed = True

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return required_text(value)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    def to_mongo(self) -> Dict[str, Any]:
        """Document ready for insert_one (no _id, Mongo assigns it)"""
        return self.model_dump(exclude={"id"})


class EventDocument(BaseModel):
    """
    Event document

    ``attendee_ids`` is kept free of duplicates. Nothing stops the creator
    from also being an attendee.
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    title: str
    description: str
    date: datetime
    time: str
    location: str
    image_url: Optional[str] = None

    creator_id: PyObjectId
    attendee_ids: List[PyObjectId] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        populate_by_name = True
        arbitrary_types_allowed = True

    @field_validator("title", "description", "location")
    @classmethod
    def _text_required(cls, value: str) -> str:
        return required_text(value)

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        value = value.strip()
        if not TIME_PATTERN.match(value):
            raise ValueError("time must be formatted as HH:MM")
        return value

    @field_validator("image_url")
    @classmethod
    def _strip_image_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("attendee_ids")
    @classmethod
    def _unique_attendees(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    def to_mongo(self) -> Dict[str, Any]:
        """Document ready for insert_one with ObjectId references"""
        doc = self.model_dump(exclude={"id"})
        doc["creator_id"] = ObjectId(self.creator_id)
        doc["attendee_ids"] = [ObjectId(a) for a in self.attendee_ids]
        return doc
