"""Tests for request assembly from profile, knowledge and history."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from chatwindow.assembler import ChatAssembler, ModelProfile
from chatwindow.config import OverflowPolicy, WindowConfig
from chatwindow.history import ChatHistory
from chatwindow.provider import ChatMessage, ChatRole, Speaker, StubLLMProvider, Turn
from chatwindow.token_counter import CharRatioCounter


def _history(n: int, size: int = 200) -> list[Turn]:
    turns = []
    for i in range(n):
        speaker = Speaker.HUMAN if i % 2 == 0 else Speaker.AI
        label = f"t{i:02d} "
        turns.append(Turn(speaker=speaker, text=label + "w" * (size - len(label))))
    return turns


def test_profile_defaults_and_validation():
    profile = ModelProfile(name="helper")
    assert profile.chat_model == "gpt-3.5-turbo"
    assert profile.max_context_turns is None
    with pytest.raises(ValidationError):
        ModelProfile(name="bad", context_budget=0)


def test_persona_becomes_system_message():
    assembler = ChatAssembler(CharRatioCounter())
    profile = ModelProfile(name="helper", system_prompt="  Be   kind. ", temperature=0.2)
    request = assembler.build_request(profile, _history(2, size=10))
    assert request.model == "gpt-3.5-turbo"
    assert request.temperature == 0.2
    assert request.messages[0].role == ChatRole.SYSTEM
    assert request.messages[0].content == "Be kind."
    assert [m.role for m in request.messages[1:]] == [ChatRole.USER, ChatRole.ASSISTANT]


def test_no_persona_no_system_message():
    assembler = ChatAssembler(CharRatioCounter())
    request = assembler.build_request(ModelProfile(name="bare"), _history(2, size=10))
    assert all(m.role != ChatRole.SYSTEM for m in request.messages)


def test_knowledge_is_packed_under_persona():
    assembler = ChatAssembler(CharRatioCounter(), config=WindowConfig(overflow_policy=OverflowPolicy.STRICT))
    profile = ModelProfile(name="kb", system_prompt="Use the facts.", knowledge_budget=10)
    snippets = ["fact one is here", "fact two is here", "fact three is here"]
    request = assembler.build_request(profile, _history(1, size=10), snippets)
    # "fact one is here\n" is 5 tokens, adding the second reaches 9, the third 14
    assert request.messages[0].content == "Use the facts.\nfact one is here\nfact two is here"


def test_history_is_windowed_under_context_budget():
    assembler = ChatAssembler(CharRatioCounter())
    profile = ModelProfile(name="p", system_prompt="sys", context_budget=120)
    request = assembler.build_request(profile, _history(30))
    assert request.messages[0].content == "sys"
    assert request.messages[-1].content.startswith("t29")
    assert len(request.messages) == 4  # sys + 3 newest turns (151 tokens)


def test_max_context_turns_limits_history():
    assembler = ChatAssembler(CharRatioCounter())
    profile = ModelProfile(name="p", max_context_turns=3, context_budget=10_000)
    request = assembler.build_request(profile, _history(10, size=20))
    assert [m.content[:3] for m in request.messages] == ["t07", "t08", "t09"]


def test_deleted_turns_skipped():
    assembler = ChatAssembler(CharRatioCounter())
    history = _history(3, size=20)
    history[1] = history[1].model_copy(update={"deleted": True})
    request = assembler.build_request(ModelProfile(name="p"), history)
    assert [m.content[:3] for m in request.messages] == ["t00", "t02"]


def test_system_turn_after_start_rejected():
    assembler = ChatAssembler(CharRatioCounter())
    history = [*_history(1), Turn(speaker=Speaker.SYSTEM, text="sneaky")]
    with pytest.raises(ValueError, match="only allowed at the start"):
        assembler.build_request(ModelProfile(name="p"), history)


def test_chat_history_system_prompt_joins_persona():
    history = ChatHistory()
    history.set_system_prompt("Be   brief.")
    history.add_human("hi")
    assembler = ChatAssembler(CharRatioCounter())
    profile = ModelProfile(name="p", system_prompt="You are a helper.")
    request = assembler.build_request(profile, history.turns, ["fact one"])
    assert [m.role for m in request.messages] == [ChatRole.SYSTEM, ChatRole.USER]
    assert request.messages[0].content == "You are a helper.\nBe brief.\nfact one"
    assert request.messages[1].content == "hi"


def test_chat_history_system_prompt_without_persona():
    history = ChatHistory()
    history.set_system_prompt("Be brief.")
    history.add_human("hi")
    request = ChatAssembler(CharRatioCounter()).build_request(ModelProfile(name="p"), history.turns)
    assert request.messages[0] == ChatMessage(role=ChatRole.SYSTEM, content="Be brief.")


@pytest.mark.asyncio
async def test_abuild_matches_build():
    assembler = ChatAssembler(CharRatioCounter())
    profile = ModelProfile(name="p", system_prompt="sys", context_budget=200, knowledge_budget=20)
    snippets = ["alpha " * 5, "beta " * 5, "gamma " * 5]
    sync_req = assembler.build_request(profile, _history(20), snippets)
    async_req = await assembler.abuild_request(profile, _history(20), snippets)
    assert sync_req == async_req


@pytest.mark.asyncio
async def test_complete_sends_request_to_provider():
    provider = StubLLMProvider()
    assembler = ChatAssembler(CharRatioCounter(), provider=provider)
    profile = ModelProfile(name="p", system_prompt="sys", chat_model="gpt-4")
    response = await assembler.complete(profile, _history(2, size=10))
    assert "model=gpt-4" in response.content
    assert response.usage is not None
    assert len(provider.requests) == 1
    assert provider.requests[0].messages[0].content == "sys"


@pytest.mark.asyncio
async def test_complete_without_provider_fails():
    assembler = ChatAssembler(CharRatioCounter())
    with pytest.raises(RuntimeError, match="without a provider"):
        await assembler.complete(ModelProfile(name="p"), [])
