import asyncio

import pytest

from backend.graphql import schema
from backend.graphql.types import Event, User, UserEventPayload
from eventflow.core.pubsub import Topics


async def subscribed(context, query, topic, **variables):
    """Start a subscription and wait until it listens on ``topic``"""
    subscription = await schema.subscribe(
        query, variable_values=variables or None, context_value=context
    )
    pending = asyncio.ensure_future(subscription.__anext__())
    for _ in range(100):
        if context.pubsub.subscriber_count(topic):
            break
        await asyncio.sleep(0)
    assert context.pubsub.subscriber_count(topic) == 1
    return subscription, pending


async def received(subscription, pending):
    result = await asyncio.wait_for(pending, timeout=2)
    await subscription.aclose()
    assert result.errors is None
    return result.data


class TestEventSubscriptions:
    async def test_event_created(self, make_context, execute, add_user):
        alice = add_user("Alice")
        subscription, pending = await subscribed(
            make_context(),
            "subscription { eventCreated { title creator { name } } }",
            Topics.EVENT_CREATED,
        )

        await execute("""
            mutation {
              createEvent(eventInput: {
                title: "Pop-up", description: "Surprise", date: "2030-03-01T18:00:00+00:00",
                time: "18:00", location: "Oslo"
              }) { id }
            }
        """, user=alice)

        data = await received(subscription, pending)
        assert data["eventCreated"] == {"title": "Pop-up", "creator": {"name": "Alice"}}

    async def test_event_updated_filters_by_id(self, make_context, add_user, add_event):
        alice = add_user("Alice")
        watched = add_event(alice, "Watched")
        other = add_event(alice, "Other")
        context = make_context()

        subscription, pending = await subscribed(
            context,
            "subscription ($id: ID) { eventUpdated(eventId: $id) { id title } }",
            Topics.EVENT_UPDATED,
            id=str(watched["_id"]),
        )

        context.pubsub.publish(Topics.EVENT_UPDATED, Event.from_document(other))
        context.pubsub.publish(Topics.EVENT_UPDATED, Event.from_document(watched))

        data = await received(subscription, pending)
        assert data["eventUpdated"] == {"id": str(watched["_id"]), "title": "Watched"}

    async def test_event_updated_without_filter(self, make_context, add_user, add_event):
        event = add_event(add_user("Alice"), "Any")
        context = make_context()

        subscription, pending = await subscribed(
            context, "subscription { eventUpdated { title } }", Topics.EVENT_UPDATED
        )
        context.pubsub.publish(Topics.EVENT_UPDATED, Event.from_document(event))

        data = await received(subscription, pending)
        assert data["eventUpdated"] == {"title": "Any"}

    async def test_event_deleted(self, make_context, execute, add_user, add_event):
        alice = add_user("Alice")
        event = add_event(alice)
        subscription, pending = await subscribed(
            make_context(), "subscription { eventDeleted }", Topics.EVENT_DELETED
        )

        await execute(
            "mutation ($id: ID!) { deleteEvent(id: $id) }", user=alice, id=str(event["_id"])
        )

        data = await received(subscription, pending)
        assert data["eventDeleted"] == str(event["_id"])


class TestAttendanceSubscriptions:
    @pytest.mark.parametrize("field, topic", [
        ("userJoinedEvent", Topics.USER_JOINED_EVENT),
        ("userLeftEvent", Topics.USER_LEFT_EVENT),
    ])
    async def test_filters_by_event(self, make_context, add_user, field, topic):
        bob, carol = add_user("Bob"), add_user("Carol")
        context = make_context()

        subscription, pending = await subscribed(
            context,
            f"subscription ($id: ID!) {{ {field}(eventId: $id) {{ name }} }}",
            topic,
            id="watched",
        )

        context.pubsub.publish(topic, UserEventPayload(user=User.from_document(carol), event_id="other"))
        context.pubsub.publish(topic, UserEventPayload(user=User.from_document(bob), event_id="watched"))

        data = await received(subscription, pending)
        assert data[field] == {"name": "Bob"}

    async def test_user_joined_event_from_mutation(self, make_context, execute, add_user, add_event):
        alice, bob = add_user("Alice"), add_user("Bob")
        event = add_event(alice)
        subscription, pending = await subscribed(
            make_context(alice),
            "subscription ($id: ID!) { userJoinedEvent(eventId: $id) { name } }",
            Topics.USER_JOINED_EVENT,
            id=str(event["_id"]),
        )

        await execute(
            "mutation ($id: ID!) { attendEvent(eventId: $id) { id } }", user=bob, id=str(event["_id"])
        )

        data = await received(subscription, pending)
        assert data["userJoinedEvent"] == {"name": "Bob"}


class TestDeliveryLoaders:
    async def test_each_delivery_uses_fresh_loaders(self, make_context, db, add_user, add_event):
        alice = add_user("Alice")
        event = add_event(alice)
        context = make_context()
        initial_loaders = context.loaders

        subscription, pending = await subscribed(
            context,
            "subscription { eventUpdated { creator { name } } }",
            Topics.EVENT_UPDATED,
        )
        context.pubsub.publish(Topics.EVENT_UPDATED, Event.from_document(event))

        data = await received(subscription, pending)
        assert data["eventUpdated"] == {"creator": {"name": "Alice"}}
        assert context.loaders is not initial_loaders
