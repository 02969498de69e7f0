import inspect
from types import SimpleNamespace

import pytest

from backend.graphql.errors import (
    AuthenticationRequired,
    ForbiddenError,
    InternalServerError,
    UserInputError,
    translate_errors,
)
from backend.graphql.permissions import require_auth
from backend.middleware.jwt_auth import CallerIdentity

CALLER = CallerIdentity(id="65f1c0ffee0000000000beef", email="alice@example.com")


def info_for(user):
    return SimpleNamespace(context=SimpleNamespace(user=user))


class TestRequireAuth:
    async def test_anonymous_caller_is_rejected_before_the_resolver_runs(self):
        calls = []

        @require_auth
        async def resolver(root, info):
            calls.append(info)

        with pytest.raises(AuthenticationRequired) as exc_info:
            await resolver(None, info=info_for(None))

        assert calls == []
        assert exc_info.value.extensions == {"code": "UNAUTHENTICATED"}

    async def test_authenticated_caller_passes_arguments_through(self):
        @require_auth
        async def resolver(root, info, page=1):
            return root, info.context.user, page

        info = info_for(CALLER)
        assert await resolver("root", info, page=3) == ("root", CALLER, 3)

    async def test_info_found_by_position(self):
        @require_auth
        async def resolver(root, info):
            return "ok"

        assert await resolver(None, info_for(CALLER)) == "ok"
        with pytest.raises(AuthenticationRequired):
            await resolver(None, info_for(None))

    async def test_resolver_errors_propagate_unchanged(self):
        error = ForbiddenError("Not authorized to update this event")

        @require_auth
        async def resolver(root, info):
            raise error

        with pytest.raises(ForbiddenError) as exc_info:
            await resolver(None, info=info_for(CALLER))
        assert exc_info.value is error

    def test_sync_resolvers_stay_sync(self):
        @require_auth
        def resolver(root, info):
            return "sync"

        assert not inspect.iscoroutinefunction(resolver)
        assert resolver(None, info=info_for(CALLER)) == "sync"
        with pytest.raises(AuthenticationRequired):
            resolver(None, info=info_for(None))

    def test_signature_is_preserved(self):
        async def my_events(self, info, pagination=None):
            """Events created by the caller"""

        wrapped = require_auth(my_events)

        assert wrapped.__name__ == "my_events"
        assert wrapped.__doc__ == "Events created by the caller"
        assert list(inspect.signature(wrapped).parameters) == ["self", "info", "pagination"]
        assert inspect.iscoroutinefunction(wrapped)

    async def test_wrapped_resolvers_are_independent(self):
        @require_auth
        async def first(root, info):
            return "first"

        @require_auth
        async def second(root, info):
            return "second"

        info = info_for(CALLER)
        assert (await first(None, info), await second(None, info)) == ("first", "second")


class TestTranslateErrors:
    def test_graphql_errors_pass_through(self):
        with pytest.raises(UserInputError, match="Event not found"):
            with translate_errors("Error updating event"):
                raise UserInputError("Event not found")

    def test_unexpected_errors_become_internal_errors(self):
        with pytest.raises(InternalServerError) as exc_info:
            with translate_errors("Error fetching events"):
                raise KeyError("boom")

        assert exc_info.value.message == "Error fetching events"
        assert exc_info.value.extensions == {"code": "INTERNAL_SERVER_ERROR"}
        assert isinstance(exc_info.value.__cause__, KeyError)
