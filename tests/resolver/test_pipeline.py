import asyncio
from unittest.mock import MagicMock

import pytest

from slack_bridge.clients.slack import Session, SlackClient
from slack_bridge.memory.cache import CacheStore
from slack_bridge.messages import MessageKind
from slack_bridge.resolver.events import Event
from slack_bridge.resolver.identity import AnonymousActor, BotActor, HumanUser
from slack_bridge.resolver.pipeline import EventResolver
from slack_bridge.users import MemoryUserStore
from tests.fakes import fake_web

USERS = {
    "U1": {"id": "U1", "name": "ann"},
    "U2": {"id": "U2", "name": "bob"},
    "USLACKBOT": {"id": "USLACKBOT", "name": "slackbot"},
}
CHANNELS = {
    "C1": {"id": "C1", "name": "general", "is_channel": True},
    "D1": {"id": "D1", "is_im": True},
}
BOTS = {
    "B2": {"id": "B2", "name": "deploys", "user_id": "U2"},
    "B3": {"id": "B3", "name": "webhook"},
}


def _resolver(web=None, users=None):
    web = web or fake_web(users=USERS, bots=BOTS, channels=CHANNELS)
    client = SlackClient(web, CacheStore())
    resolver = EventResolver(client, Session(user_id="UBOT", bot_id="BBOT"), users)
    emitted = []
    resolver.on_resolved(emitted.append)
    return resolver, web, emitted


@pytest.mark.asyncio
async def test_message_end_to_end():
    resolver, _, emitted = _resolver()

    await resolver.resolve_and_emit(
        {"type": "message", "user": "U1", "channel": "C1", "event_ts": "100.1", "text": "hi"}
    )

    assert len(emitted) == 1
    message = emitted[0]
    assert message.kind is MessageKind.TEXT
    assert message.id == "100.1"
    assert message.text == "hi"
    assert message.user == {
        "id": "U1",
        "name": "ann",
        "room": {"id": "C1", "name": "general", "type": "channel"},
        "bot_id": None,
    }


@pytest.mark.asyncio
async def test_own_messages_are_ignored():
    resolver, web, emitted = _resolver()

    await resolver.resolve_and_emit(
        {"type": "message", "user": "UBOT", "channel": "C1", "event_ts": "1.0", "text": "echo"}
    )
    await resolver.resolve_and_emit(
        {"type": "message", "bot_id": "BBOT", "channel": "C1", "event_ts": "1.1"}
    )

    assert emitted == []
    web.users_info.assert_not_awaited()
    web.bots_info.assert_not_awaited()


@pytest.mark.asyncio
async def test_own_inline_user_payloads_are_ignored():
    users = MagicMock(wraps=MemoryUserStore())
    resolver, web, emitted = _resolver(users=users)

    await resolver.resolve_and_emit(
        {
            "type": "message",
            "user": {"id": "UBOT", "name": "bridge", "profile": {}},
            "channel": "C1",
            "event_ts": "1.2",
        }
    )
    await resolver.resolve_and_emit(
        {"type": "user_change", "user": {"id": "UBOT", "name": "bridge2", "profile": {}}, "event_ts": "1.3"}
    )

    assert emitted == []
    users.upsert.assert_not_called()
    web.conversations_info.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_change_updates_store_without_emitting():
    users = MemoryUserStore()
    resolver, web, emitted = _resolver(users=users)
    await resolver.client.user_by_id("U1")

    await resolver.resolve_and_emit(
        {
            "type": "user_change",
            "user": {"id": "U1", "name": "ann.new", "profile": {"display_name": "Ann"}},
            "event_ts": "5.0",
        }
    )

    assert emitted == []
    assert users.get("U1")["name"] == "ann.new"
    assert not resolver.client.store.has("user_by_id", "U1")


@pytest.mark.asyncio
async def test_inline_user_payload_used_directly():
    users = MemoryUserStore()
    resolver, web, emitted = _resolver(users=users)

    await resolver.resolve_and_emit(
        {
            "type": "message",
            "user": {"id": "U9", "name": "zed", "profile": {}},
            "channel": {"id": "G1", "name": "secret", "is_group": True},
            "event_ts": "2.0",
        }
    )

    web.users_info.assert_not_awaited()
    web.conversations_info.assert_not_awaited()
    assert emitted[0].user["name"] == "zed"
    assert emitted[0].room == {"id": "G1", "name": "secret", "type": "group"}


@pytest.mark.asyncio
async def test_bot_with_user_resolves_to_bot_actor():
    resolver, web, emitted = _resolver()
    event = Event.from_payload({"type": "message", "bot_id": "B2", "channel": "C1", "event_ts": "3.0"})

    identity = await resolver.resolve_identity(event)

    assert isinstance(identity, BotActor)
    assert identity.user.id == "U2"
    assert identity.id == "U2"
    assert resolver.client.bot_map.get("B2").user_id == "U2"

    # Mapping is reused without another bots.info call
    await resolver.resolve_and_emit({"type": "message", "bot_id": "B2", "channel": "C1", "event_ts": "3.1"})
    assert web.bots_info.await_count == 1
    assert emitted[0].user["id"] == "U2"
    assert emitted[0].user["bot_id"] == "B2"


@pytest.mark.asyncio
async def test_bot_id_does_not_stick_to_human_user():
    users = MemoryUserStore()
    resolver, _, emitted = _resolver(users=users)

    await resolver.resolve_and_emit({"type": "message", "bot_id": "B2", "channel": "C1", "event_ts": "3.2"})
    await resolver.resolve_and_emit({"type": "message", "user": "U2", "channel": "C1", "event_ts": "3.3"})

    assert emitted[1].user["id"] == "U2"
    assert emitted[1].user["bot_id"] is None
    assert users.get("U2")["bot_id"] is None


@pytest.mark.asyncio
async def test_bot_without_user_is_anonymous_and_remembered():
    resolver, web, emitted = _resolver()

    await resolver.resolve_and_emit(
        {"type": "message", "bot_id": "B3", "team_id": "T1", "channel": "C1", "event_ts": "4.0"}
    )
    resolver.client.store.reset_all()
    identity = await resolver.resolve_identity(
        Event.from_payload({"type": "message", "bot_id": "B3", "team_id": "T1", "event_ts": "4.1"})
    )

    assert identity == AnonymousActor(bot_id="B3", team_id="T1")
    assert resolver.client.bot_map.get("B3") is False
    assert web.bots_info.await_count == 1
    assert emitted[0].user["id"] == "B3"
    assert emitted[0].user["team_id"] == "T1"


@pytest.mark.asyncio
async def test_seeded_slackbot_mapping():
    resolver, web, _ = _resolver()

    identity = await resolver.resolve_bot("B01")

    assert isinstance(identity, BotActor)
    assert identity.user_id == "USLACKBOT"
    web.bots_info.assert_not_awaited()


@pytest.mark.asyncio
async def test_event_without_actor_is_null_user():
    resolver, _, emitted = _resolver()

    await resolver.resolve_and_emit({"type": "message", "channel": "D1", "event_ts": "6.0", "text": "?"})

    assert emitted[0].user["id"] == "null"
    assert emitted[0].room["type"] == "im"


@pytest.mark.asyncio
async def test_membership_events():
    resolver, _, emitted = _resolver()

    await resolver.resolve_and_emit({"type": "member_joined_channel", "user": "U1", "channel": "C1", "event_ts": "7.0"})
    await resolver.resolve_and_emit({"type": "member_left_channel", "user": "U1", "channel": "C1", "event_ts": "7.1"})

    assert [m.kind for m in emitted] == [MessageKind.ENTER, MessageKind.LEAVE]
    assert [m.id for m in emitted] == ["7.0", "7.1"]


@pytest.mark.asyncio
async def test_rich_message_with_attachments_or_files():
    resolver, _, emitted = _resolver()
    attachments = [{"fallback": "chart"}]

    await resolver.resolve_and_emit(
        {"type": "message", "user": "U1", "channel": "C1", "event_ts": "8.0", "text": "see", "attachments": attachments}
    )
    await resolver.resolve_and_emit(
        {"type": "message", "user": "U1", "channel": "C1", "event_ts": "8.1", "files": [{"id": "F1"}]}
    )

    assert [m.kind for m in emitted] == [MessageKind.RICH, MessageKind.RICH]
    assert emitted[0].payload == {"attachments": attachments, "text": "see"}
    assert emitted[1].payload["attachments"] == [{"id": "F1"}]


@pytest.mark.asyncio
async def test_reaction_resolves_item_user():
    resolver, _, emitted = _resolver()

    await resolver.resolve_and_emit(
        {
            "type": "reaction_added",
            "user": "U1",
            "item_user": "U2",
            "reaction": "thumbsup",
            "item": {"type": "message", "channel": "C1", "ts": "9.0"},
            "event_ts": "9.5",
        }
    )

    message = emitted[0]
    assert message.kind is MessageKind.REACTION
    assert message.payload["item_user"]["name"] == "bob"
    assert message.payload["added"] is True
    assert message.room["name"] == "general"


@pytest.mark.asyncio
async def test_unrecognized_type_not_emitted():
    resolver, _, emitted = _resolver()

    result = await resolver.resolve_and_emit({"type": "presence_change", "user": "U1", "presence": "away"})

    assert result is None
    assert emitted == []


@pytest.mark.asyncio
async def test_lookup_failure_drops_only_that_event(caplog):
    resolver, web, emitted = _resolver()

    await resolver.resolve_and_emit({"type": "message", "user": "U404", "channel": "C1", "event_ts": "10.0"})
    await resolver.resolve_and_emit({"type": "message", "user": "U1", "channel": "C1", "event_ts": "10.1"})

    assert [m.id for m in emitted] == ["10.1"]
    assert not resolver.client.store.has("user_by_id", "U404")
    assert "user_not_found" in caplog.text


@pytest.mark.asyncio
async def test_malformed_event_dropped(caplog):
    resolver, _, emitted = _resolver()

    assert await resolver.resolve_and_emit({"user": "U1"}) is None
    assert await resolver.resolve_and_emit({"type": "message", "user": "U1"}) is None

    assert emitted == []
    assert "malformed" in caplog.text


@pytest.mark.asyncio
async def test_repeat_user_upserts_same_canonical_record():
    users = MagicMock(wraps=MemoryUserStore())
    resolver, web, emitted = _resolver(users=users)

    for ts in ("11.0", "11.1"):
        await resolver.resolve_and_emit({"type": "message", "user": "U1", "channel": "C1", "event_ts": ts})

    assert emitted[0].user is emitted[1].user
    assert [c.args[0] for c in users.upsert.call_args_list] == ["U1", "U1"]
    assert web.users_info.await_count == 1


@pytest.mark.asyncio
async def test_concurrent_events_share_lookups():
    resolver, web, emitted = _resolver()

    await asyncio.gather(
        *(
            resolver.resolve_and_emit({"type": "message", "user": "U1", "channel": "C1", "event_ts": f"12.{i}"})
            for i in range(4)
        )
    )

    assert len(emitted) == 4
    assert web.users_info.await_count == 1
    assert web.conversations_info.await_count == 1


@pytest.mark.asyncio
async def test_async_consumer_is_awaited_and_errors_contained(caplog):
    resolver, _, _ = _resolver()
    seen = []

    async def consumer(message):
        seen.append(message.id)
        raise RuntimeError("consumer broke")

    resolver.on_resolved(consumer)
    result = await resolver.resolve_and_emit({"type": "message", "user": "U1", "event_ts": "13.0"})

    assert seen == ["13.0"]
    assert result.user["room"] is None
    assert "Consumer failed" in caplog.text


@pytest.mark.asyncio
async def test_human_user_identity_from_bare_id():
    resolver, _, _ = _resolver()

    identity = await resolver.resolve_identity(Event.from_payload({"type": "message", "user": "U1", "event_ts": "1"}))

    assert identity == HumanUser(id="U1", attributes={"id": "U1", "name": "ann"})
