"""
GraphQL Errors

Error types raised by resolvers. Each carries an ``extensions.code`` so
clients can tell authentication, authorization and input problems apart.
"""

from contextlib import contextmanager
from typing import Iterator

from graphql import GraphQLError

from eventflow.utils.logger import get_logger

logger = get_logger(__name__)


class CodedGraphQLError(GraphQLError):
    """GraphQLError with a fixed extensions code"""

    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message, extensions={"code": self.code})


class AuthenticationRequired(CodedGraphQLError):
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class InvalidCredentials(CodedGraphQLError):
    code = "UNAUTHENTICATED"
    default_message = "Invalid credentials"


class ForbiddenError(CodedGraphQLError):
    code = "FORBIDDEN"
    default_message = "Not authorized to perform this action"


class UserInputError(CodedGraphQLError):
    code = "BAD_USER_INPUT"
    default_message = "Invalid input"


class NotFoundError(CodedGraphQLError):
    code = "NOT_FOUND"
    default_message = "Not found"


class InternalServerError(CodedGraphQLError):
    code = "INTERNAL_SERVER_ERROR"


@contextmanager
def translate_errors(message: str) -> Iterator[None]:
    """
    Turn unexpected failures inside a resolver into a client-safe error.

    GraphQL errors raised on purpose pass through unchanged; anything else
    is logged with its traceback and replaced by InternalServerError.
    """
    try:
        yield
    except GraphQLError:
        raise
    except Exception as e:
        logger.error(f"❌ {message}: {e}", exc_info=True)
        raise InternalServerError(message) from e
