import asyncio
import json

import httpx

from clario.providers.base import UNAVAILABLE_MESSAGE, TextOutcome, ToolCallsOutcome
from clario.providers.responses import ResponsesProvider, build_input, choose_tool_choice, parse_output

BASE_URL = "https://llm.test"


def _provider(handler, **kwargs) -> ResponsesProvider:
    return ResponsesProvider(
        base_url=BASE_URL,
        api_key="sk-test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _tool_history() -> list[dict]:
    return [
        {"role": "user", "content": "remind me to call mom"},
        {
            "role": "assistant",
            "content": "",
            "tool_calls": [
                {
                    "id": "call_1",
                    "type": "function",
                    "function": {"name": "create_task", "arguments": '{"title": "Call mom"}'},
                }
            ],
        },
        {"role": "tool", "content": '{"id": "abc"}', "tool_call_id": "call_1"},
    ]


def test_build_input_translates_tool_turns():
    items = build_input(_tool_history() + [{"role": "system", "content": "summary"}])
    assert items == [
        {"role": "user", "content": "remind me to call mom"},
        {
            "type": "function_call",
            "call_id": "call_1",
            "name": "create_task",
            "arguments": '{"title": "Call mom"}',
        },
        {"type": "function_call_output", "call_id": "call_1", "output": '{"id": "abc"}'},
    ]


def test_build_input_encodes_dict_arguments_and_defaults_call_ids():
    items = build_input([
        {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"id": "c9", "function": {"name": "list_tasks", "arguments": {"userId": "u1"}}}],
        },
        {"role": "tool", "content": "{}", "name": "list_tasks"},
        {"role": "tool", "content": "{}"},
        {"role": "assistant", "content": "All done"},
    ])
    assert json.loads(items[0]["arguments"]) == {"userId": "u1"}
    assert items[1]["call_id"] == "list_tasks"
    assert items[2]["call_id"] == "call"
    assert items[3] == {"role": "assistant", "content": "All done"}


def test_tool_choice_depends_on_last_item():
    assert choose_tool_choice([{"role": "user", "content": "hi"}]) == "required"
    assert choose_tool_choice(build_input(_tool_history())) == "auto"
    assert choose_tool_choice([]) == "auto"


def test_parse_output_prefers_tool_calls_over_text():
    outcome = parse_output({
        "output": [
            {"type": "message", "content": "Sure!"},
            {"type": "function_call", "call_id": "call_a", "name": "list_tasks", "arguments": "{}"},
            {"type": "function_call", "id": "fc_b", "name": "find_tasks", "arguments": {"query": "milk"}},
            {"type": "function_call", "name": "retrieve_people", "arguments": "not json"},
            {"type": "function_call", "name": "", "arguments": "{}"},
        ]
    })
    assert isinstance(outcome, ToolCallsOutcome)
    assert [(c.id, c.name) for c in outcome.calls] == [
        ("call_a", "list_tasks"),
        ("fc_b", "find_tasks"),
        ("call_0", "retrieve_people"),
    ]
    assert outcome.calls[1].arguments == {"query": "milk"}
    assert outcome.calls[2].arguments == {}


def test_parse_output_text_variants():
    parts = parse_output({
        "output": [
            {"type": "message", "content": [{"type": "output_text", "text": " Hello "}, {"text": "there "}]}
        ]
    })
    assert parts == TextOutcome("Hello there")

    last_wins = parse_output({
        "output": [
            {"type": "message", "content": "first"},
            {"type": "output_text", "text": "  second  "},
        ]
    })
    assert last_wins == TextOutcome("second")


def test_parse_output_falls_back_when_nothing_usable():
    assert parse_output({}) == TextOutcome(UNAVAILABLE_MESSAGE)
    assert parse_output({"output": []}) == TextOutcome(UNAVAILABLE_MESSAGE)
    assert parse_output({"output": [{"type": "message", "content": "   "}]}) == TextOutcome(UNAVAILABLE_MESSAGE)


def test_chat_with_tools_sends_responses_request():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"output": [{"type": "output_text", "text": "Done!"}]})

    provider = _provider(handler)
    tools = [{"type": "function", "name": "list_tasks", "description": "", "parameters": {}}]
    outcome = asyncio.run(
        provider.chat_with_tools("be nice", [{"role": "user", "content": "hi"}], tools)
    )

    assert outcome == TextOutcome("Done!")
    assert seen["url"] == f"{BASE_URL}/v1/responses"
    assert seen["auth"] == "Bearer sk-test"
    body = seen["body"]
    assert body["model"] == "gpt-5.1-codex-mini"
    assert body["instructions"] == "be nice"
    assert body["input"] == [{"role": "user", "content": "hi"}]
    assert body["tools"] == tools
    assert body["tool_choice"] == "required"


def test_chat_with_tools_uses_auto_after_tool_output():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"output": [{"type": "message", "content": "ok"}]})

    asyncio.run(_provider(handler).chat_with_tools("x", _tool_history(), []))
    assert seen["body"]["tool_choice"] == "auto"


def test_chat_with_tools_fallbacks():
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    def empty(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="")

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    messages = [{"role": "user", "content": "hi"}]
    for handler in (server_error, not_json, empty, broken):
        outcome = asyncio.run(_provider(handler).chat_with_tools("x", messages, []))
        assert outcome == TextOutcome(UNAVAILABLE_MESSAGE)

    unconfigured = ResponsesProvider(base_url="  ")
    assert asyncio.run(unconfigured.chat_with_tools("x", messages, [])) == TextOutcome(UNAVAILABLE_MESSAGE)


def test_chat_reads_completion_content_and_returns_input_on_failure():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": " summary "}}]})

    result = asyncio.run(_provider(handler).chat("sys", "history"))
    assert result == "summary"
    assert seen["url"] == f"{BASE_URL}/v1/chat/completions"
    assert seen["body"]["model"] == "gpt-4.1-nano"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "sys"}

    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    assert asyncio.run(_provider(failing).chat("sys", "history")) == "history"
    assert asyncio.run(ResponsesProvider().chat("sys", "history")) == "history"


def test_format_tool_result_prompt_and_fallback():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Saved it for you!"}}]})

    result = {"id": "t1", "title": "Call mom"}
    text = asyncio.run(
        _provider(handler).format_tool_result("You are Astra.", "call mom later", "create_task", result)
    )
    assert text == "Saved it for you!"
    system, user = seen["body"]["messages"]
    assert system["content"].startswith("You are Astra.")
    assert "Do NOT mention tool names" in system["content"]
    assert user["content"].startswith('The user said: "call mom later"\nTool executed: create_task\nResult:\n')

    fallback = asyncio.run(ResponsesProvider().format_tool_result("p", "m", "create_task", result))
    assert fallback == f"Here's what I found (create_task):\n{json.dumps(result)}"
