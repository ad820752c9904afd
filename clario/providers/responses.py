"""OpenAI-compatible provider using the Responses API for tool calling."""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from clario.providers.base import (
    UNAVAILABLE_MESSAGE,
    LLMProvider,
    ModelOutcome,
    TextOutcome,
    ToolCallRequest,
    ToolCallsOutcome,
)

FORMAT_INSTRUCTION = (
    "You just executed a tool on behalf of the user. Summarize the result below in a warm, "
    "concise, natural-language message. Do NOT mention tool names, JSON, or technical details. "
    "Respond as if you are chatting with a friend on WhatsApp - keep it short and helpful."
)


def _truncate(text: str, limit: int = 500) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _to_json(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _parse_object(raw: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def build_input(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Translate chat-shaped turns into Responses API input items.

    Assistant tool-call turns become one function_call item per call and
    tool turns become function_call_output items. System turns are not sent;
    their content travels in the instructions.
    """
    items: list[dict[str, Any]] = []
    for message in messages:
        role = str(message.get("role") or "user")
        content = message.get("content")
        text = "" if content is None else str(content)
        if role == "user":
            items.append({"role": "user", "content": text})
        elif role == "assistant":
            tool_calls = message.get("tool_calls")
            if isinstance(tool_calls, list) and tool_calls:
                for call in tool_calls:
                    if not isinstance(call, dict):
                        continue
                    call_id = call.get("id")
                    fn = call.get("function") if isinstance(call.get("function"), dict) else {}
                    name = fn.get("name")
                    arguments = fn.get("arguments")
                    if arguments is None:
                        arguments = "{}"
                    if call_id and name:
                        items.append({
                            "type": "function_call",
                            "call_id": str(call_id),
                            "name": str(name),
                            "arguments": _to_json(arguments),
                        })
            else:
                items.append({"role": "assistant", "content": text})
        elif role in {"tool", "function"}:
            call_id = message.get("tool_call_id") or message.get("name") or "call"
            items.append({
                "type": "function_call_output",
                "call_id": str(call_id),
                "output": text,
            })
    return items


def choose_tool_choice(items: list[dict[str, Any]]) -> str:
    """Force a tool call when the user has just spoken; otherwise let the model decide."""
    if items and items[-1].get("role") == "user":
        return "required"
    return "auto"


def _message_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content.strip() or None
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                text = part.get("text")
                if text is not None and str(text).strip():
                    parts.append(str(text).strip())
        return " ".join(parts) or None
    return None


def parse_output(data: dict[str, Any]) -> ModelOutcome:
    """Classify a Responses API body. Any function call wins over text."""
    output = data.get("output")
    if not isinstance(output, list) or not output:
        logger.warning("Responses output missing or empty; using fallback reply")
        return TextOutcome(UNAVAILABLE_MESSAGE)

    calls: list[ToolCallRequest] = []
    text: str | None = None
    synthesized = 0
    for item in output:
        if not isinstance(item, dict):
            continue
        kind = str(item.get("type") or "")
        if kind == "function_call":
            name = str(item.get("name") or "").strip()
            if not name:
                continue
            raw_args = item.get("arguments")
            arguments: dict[str, Any] = {}
            if isinstance(raw_args, dict):
                arguments = raw_args
            elif raw_args is not None and str(raw_args).strip():
                arguments = _parse_object(str(raw_args)) or {}
            call_id = item.get("call_id") or item.get("id")
            if not call_id:
                call_id = f"call_{synthesized}"
                synthesized += 1
            calls.append(ToolCallRequest(id=str(call_id), name=name, arguments=arguments))
        elif kind == "message":
            extracted = _message_text(item.get("content"))
            if extracted:
                text = extracted
        elif kind == "output_text":
            raw_text = item.get("text")
            if raw_text is not None and str(raw_text).strip():
                text = str(raw_text).strip()

    if calls:
        return ToolCallsOutcome(calls=tuple(calls))
    if text:
        return TextOutcome(text)
    logger.warning(f"No tool calls or text in response output: {_truncate(str(output))}")
    return TextOutcome(UNAVAILABLE_MESSAGE)


class ResponsesProvider(LLMProvider):
    """
    Provider for OpenAI-compatible backends.

    Tool calling goes through /v1/responses; single-shot summaries and
    compaction go through /v1/chat/completions.
    """

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        model: str = "gpt-5.1-codex-mini",
        chat_model: str = "gpt-4.1-nano",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or "").strip().rstrip("/")
        self.api_key = api_key or ""
        self.model = model
        self.chat_model = chat_model
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(path, json=payload, headers=self._headers())
            response.raise_for_status()
            return response

    async def chat_with_tools(
        self,
        instructions: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> ModelOutcome:
        if not self.configured:
            logger.warning("LLM base URL not configured; returning fallback reply")
            return TextOutcome(UNAVAILABLE_MESSAGE)

        items = build_input(messages)
        payload = {
            "model": self.model,
            "instructions": instructions,
            "input": items,
            "tools": tools,
            "tool_choice": choose_tool_choice(items),
        }
        try:
            response = await self._post("/v1/responses", payload)
            body = response.text
            if not body.strip():
                logger.warning("Empty Responses API body; returning fallback reply")
                return TextOutcome(UNAVAILABLE_MESSAGE)
            data = _parse_object(body)
            if data is None:
                logger.warning(f"Responses API body is not a JSON object: {_truncate(body)}")
                return TextOutcome(UNAVAILABLE_MESSAGE)
            return parse_output(data)
        except Exception as e:
            logger.warning(f"Responses API call failed; returning fallback reply: {e}")
            return TextOutcome(UNAVAILABLE_MESSAGE)

    async def _complete(self, system_prompt: str, user_message: str) -> str | None:
        payload = {
            "model": self.chat_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
        }
        response = await self._post("/v1/chat/completions", payload)
        data = response.json()
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            return None
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if content is None or not str(content).strip():
            return None
        return str(content).strip()

    async def chat(self, system_prompt: str, user_message: str) -> str:
        if not self.configured:
            logger.debug("LLM base URL not configured; chat returns input unchanged")
            return user_message
        try:
            content = await self._complete(system_prompt, user_message)
        except Exception as e:
            logger.warning(f"Chat completion failed: {e}")
            return user_message
        return content if content is not None else user_message

    async def format_tool_result(
        self,
        persona: str,
        user_message: str,
        tool_name: str,
        result: Any,
    ) -> str:
        result_json = _to_json(result)
        fallback = f"Here's what I found ({tool_name}):\n{result_json}"
        if not self.configured:
            return fallback

        system_prompt = f"{persona}\n\n{FORMAT_INSTRUCTION}"
        prompt = (
            f'The user said: "{user_message}"\n'
            f"Tool executed: {tool_name}\n"
            f"Result:\n{result_json}"
        )
        try:
            content = await self._complete(system_prompt, prompt)
        except Exception as e:
            logger.warning(f"Tool result formatting failed: {e}")
            return fallback
        return content if content is not None else fallback
