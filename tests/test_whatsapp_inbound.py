import asyncio

import pytest

from clario.agent.api import Assistant
from clario.channels.whatsapp import (
    NO_PHONE_REPLY,
    NON_TEXT_REPLY,
    PROCESSING_ERROR_REPLY,
    ConsoleWhatsAppSender,
    WhatsAppInbound,
    build_sender,
)
from clario.config.schema import Config, WhatsAppConfig
from clario.providers.base import LLMProvider, TextOutcome
from clario.services.profiles import DEFAULT_ASSISTANT_NAME
from clario.services.users import phone_candidates
from clario.utils.helpers import mask_phone
from clario.utils.sanitize import sanitize, sanitize_title


class EchoProvider(LLMProvider):
    def __init__(self, fail: bool = False):
        self.fail = fail

    async def chat_with_tools(self, instructions, messages, tools):
        if self.fail:
            raise RuntimeError("backend exploded")
        return TextOutcome(f"echo: {messages[-1]['content']}")

    async def chat(self, system_prompt, user_message):
        return user_message

    async def format_tool_result(self, persona, user_message, tool_name, result):
        return str(result)


def _inbound(tmp_path, monkeypatch, provider=None) -> WhatsAppInbound:
    monkeypatch.setenv("CLARIO_DATA_DIR", str(tmp_path / "data"))
    config = Config()
    config.agent.workspace = str(tmp_path / "workspace")
    assistant = Assistant(config=config, provider=provider or EchoProvider())
    assistant.users.add("+14155550100", user_id="alice")
    return WhatsAppInbound(assistant)


def test_registered_user_gets_assistant_reply(tmp_path, monkeypatch):
    inbound = _inbound(tmp_path, monkeypatch)
    reply = asyncio.run(inbound.handle_text("14155550100", "hi there"))

    assert reply == "echo: hi there"
    profile = inbound.assistant.profiles.get("alice")
    assert profile is not None
    assert profile.assistant_name == DEFAULT_ASSISTANT_NAME


def test_unregistered_number_is_told_to_sign_up(tmp_path, monkeypatch):
    inbound = _inbound(tmp_path, monkeypatch)
    reply = asyncio.run(inbound.handle_text("+447700900123", "hello"))
    assert "+447700900123" in reply
    assert "not registered" in reply


@pytest.mark.parametrize(
    ("phone", "text", "expected"),
    [
        ("", "hello", NO_PHONE_REPLY),
        (None, "hello", NO_PHONE_REPLY),
        ("+14155550100", None, NON_TEXT_REPLY),
        ("+14155550100", "   ", NON_TEXT_REPLY),
    ],
)
def test_missing_phone_or_text_gets_fixed_reply(tmp_path, monkeypatch, phone, text, expected):
    inbound = _inbound(tmp_path, monkeypatch)
    assert asyncio.run(inbound.handle_text(phone, text)) == expected


def test_processing_failure_returns_apology(tmp_path, monkeypatch):
    inbound = _inbound(tmp_path, monkeypatch, EchoProvider(fail=True))
    assert asyncio.run(inbound.handle_text("+14155550100", "hello")) == PROCESSING_ERROR_REPLY


def test_phone_candidates_cover_common_forms():
    assert phone_candidates("+1 (415) 555-0100") == [
        "+14155550100",
        "14155550100",
        "4155550100",
        "+4155550100",
    ]
    assert phone_candidates("5550100") == ["+5550100", "5550100"]
    assert phone_candidates("n/a") == []


def test_find_by_phone_matches_stored_local_number(tmp_path, monkeypatch):
    inbound = _inbound(tmp_path, monkeypatch)
    users = inbound.assistant.users
    users.add("4155550199", user_id="bob")

    assert users.find_by_phone("+1 415 555 0199").id == "bob"
    assert users.find_by_phone("+14155550100").id == "alice"
    assert users.find_by_phone("+15555555555") is None


def test_sanitize_strips_markup_and_control_characters():
    assert sanitize("<script>alert(1)</script>Buy <b>milk</b>\x00") == "Buy milk"
    assert sanitize('<a onclick="x">javascript:go</a>') == "go"
    assert sanitize(None) is None
    assert len(sanitize_title("x" * 600)) == 500


def test_mask_phone_keeps_last_four():
    assert mask_phone("+14155550100") == "********0100"
    assert mask_phone("123") == "****"


def test_build_sender_defaults_to_console():
    assert isinstance(build_sender(WhatsAppConfig()), ConsoleWhatsAppSender)
    assert isinstance(build_sender(WhatsAppConfig(outbound="carrier-pigeon")), ConsoleWhatsAppSender)
    assert build_sender(WhatsAppConfig(outbound="bridge")).name == "bridge"


def test_ensure_default_keeps_an_existing_profile(tmp_path, monkeypatch):
    profiles = _inbound(tmp_path, monkeypatch).assistant.profiles

    created = profiles.ensure_default("carol")
    assert created.assistant_name == DEFAULT_ASSISTANT_NAME

    profiles.update("carol", personality_prompt="You are terse.", assistant_name="Max")
    kept = profiles.ensure_default("carol")
    assert (kept.assistant_name, kept.personality_prompt) == ("Max", "You are terse.")
