"""Tests for the conversation historian."""

from datetime import datetime, timezone

import pytest

from chatbridge.cost import ChatCost
from chatbridge.errors import ChatError, ErrorKind
from chatbridge.historian import Historian
from chatbridge.messages import ChatEntry, ChatRole, Content
from chatbridge.providers.response import ChatResponse

T0 = datetime(2025, 5, 1, tzinfo=timezone.utc)


def echo_chat(seen):
    async def chat(messages):
        seen.append(tuple(messages))
        reply = Content(ChatRole.AGENT, f"echo {len(messages)}")
        return ChatResponse((ChatEntry(T0, reply, cost=ChatCost("1", "1")),), ChatCost("1", "1"))
    return chat


class TestHistorian:
    @pytest.mark.asyncio
    async def test_appends_message_and_reply(self):
        seen = []
        historian = Historian(echo_chat(seen))

        response = await historian.invoke("hello")

        assert response.messages == [Content(ChatRole.AGENT, "echo 1")]
        assert historian.history == (
            Content(ChatRole.USER, "hello"),
            Content(ChatRole.AGENT, "echo 1"),
        )

    @pytest.mark.asyncio
    async def test_each_turn_sees_full_history(self):
        seen = []
        historian = Historian(echo_chat(seen), [Content(ChatRole.SYSTEM, "be brief")])

        await historian.invoke("one")
        await historian.invoke(Content(ChatRole.DEVELOPER, "two"))

        assert [len(s) for s in seen] == [2, 4]
        assert seen[1][-1] == Content(ChatRole.DEVELOPER, "two")

    @pytest.mark.asyncio
    async def test_failure_keeps_message_and_traces(self):
        async def failing(messages):
            raise ChatError("down", ErrorKind.SERVICE_ERROR)

        historian = Historian(failing)
        with pytest.raises(ChatError) as exc:
            await historian.invoke("hello")

        assert exc.value.traces == ["historian"]
        assert historian.history == (Content(ChatRole.USER, "hello"),)

    def test_history_is_read_only_snapshot(self):
        historian = Historian(echo_chat([]), [Content(ChatRole.USER, "x")])
        assert isinstance(historian.history, tuple)
