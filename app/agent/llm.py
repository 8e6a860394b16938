"""
Answer providers: Google Gemini (primary) and a chat-completions endpoint (secondary).

The primary provider may declare visual-aid tools; when the model elects one,
the call is surfaced as a PrimaryToolCall and the orchestrator sends the result
back with resume(). The secondary provider is a single JSON POST with no tools.
"""

import logging
from collections.abc import Sequence
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.agent.models import PrimaryReply, PrimaryText, PrimaryToolCall, ToolId
from app.core.config import LLM_API_TIMEOUT
from app.core.errors import (
    FailureKind,
    FallbackContentMissing,
    FallbackTransportFailure,
    PrimaryGenerationFailure,
    kind_from_message,
)

logger = logging.getLogger(__name__)


def _failure_from_api_error(e: genai_errors.APIError) -> PrimaryGenerationFailure:
    message = str(e)
    kind = kind_from_message(message)
    if kind is None and getattr(e, "code", None) == 503:
        kind = FailureKind.SERVICE_UNAVAILABLE
    return PrimaryGenerationFailure(kind or FailureKind.PROVIDER_ERROR, message)


def _response_text(response: Any) -> str:
    try:
        text = getattr(response, "text", None)
    except ValueError:
        text = None
    return (text or "").strip()


class PrimaryAnswerProvider:
    """Gemini text generation with an instructional prompt template."""

    def __init__(
        self,
        api_key: str,
        model: str,
        prompt_template: str,
        client: Any | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.prompt_template = prompt_template
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise PrimaryGenerationFailure(FailureKind.NOT_CONFIGURED, "GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def build_prompt(self, question: str) -> str:
        return self.prompt_template.format(question=question)

    async def _generate_content(self, contents: Any, config: types.GenerateContentConfig | None) -> Any:
        client = self._get_client()
        try:
            return await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            raise _failure_from_api_error(e) from e
        except httpx.HTTPError as e:
            message = f"{type(e).__name__}: {e}"
            raise PrimaryGenerationFailure(kind_from_message(message) or FailureKind.PROVIDER_ERROR, message) from e

    async def generate(
        self,
        question: str,
        tools: Sequence[types.FunctionDeclaration] = (),
    ) -> PrimaryReply:
        """
        Ask the model to answer. With tools, the model may return a function call
        instead of text; only the first call is surfaced.
        """
        prompt = self.build_prompt(question)
        logger.info("[llm:primary] IN  prompt_len=%d tools=%s", len(prompt), [t.name for t in tools])
        config = None
        if tools:
            config = types.GenerateContentConfig(
                tools=[types.Tool(function_declarations=list(tools))],
                automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
            )
        response = await self._generate_content(prompt, config)

        calls = getattr(response, "function_calls", None) or []
        if calls:
            call = calls[0]
            if len(calls) > 1:
                logger.info("[llm:primary] model requested %d tool calls; using %r", len(calls), call.name)
            try:
                tool = ToolId(call.name)
            except ValueError as e:
                raise PrimaryGenerationFailure(
                    FailureKind.PROVIDER_ERROR, f"Model requested unknown tool {call.name!r}"
                ) from e
            logger.info("[llm:primary] OUT tool_call=%s", tool.value)
            return PrimaryToolCall(tool=tool, arguments=dict(call.args or {}))

        text = _response_text(response)
        if not text:
            raise PrimaryGenerationFailure(FailureKind.EMPTY_OUTPUT, "Failed to generate an answer from Gemini.")
        logger.info("[llm:primary] OUT text_len=%d", len(text))
        return PrimaryText(text)

    async def resume(
        self,
        question: str,
        call: PrimaryToolCall,
        tool_result: str,
        tools: Sequence[types.FunctionDeclaration],
    ) -> str:
        """Feed a tool result back into the same turn. Function calling is off, so the reply is text."""
        prompt = self.build_prompt(question)
        contents = [
            types.Content(role="user", parts=[types.Part.from_text(text=prompt)]),
            types.Content(
                role="model",
                parts=[types.Part.from_function_call(name=call.tool.value, args=call.arguments)],
            ),
            types.Content(
                role="user",
                parts=[types.Part.from_function_response(name=call.tool.value, response={"result": tool_result})],
            ),
        ]
        config = types.GenerateContentConfig(
            tools=[types.Tool(function_declarations=list(tools))],
            tool_config=types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(mode="NONE"),
            ),
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        logger.info("[llm:primary:resume] IN  tool=%s result_len=%d", call.tool.value, len(tool_result))
        response = await self._generate_content(contents, config)
        text = _response_text(response)
        if not text:
            raise PrimaryGenerationFailure(FailureKind.EMPTY_OUTPUT, "Failed to generate an answer from Gemini.")
        logger.info("[llm:primary:resume] OUT text_len=%d", len(text))
        return text


class SecondaryAnswerProvider:
    """OpenAI-compatible chat completions (Hugging Face router by default). Single shot, no tools."""

    def __init__(
        self,
        api_key: str,
        url: str,
        model: str,
        system_prompt: str,
        timeout: float = LLM_API_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.model = model
        self.system_prompt = system_prompt
        self.timeout = timeout
        self._transport = transport

    async def generate(self, question: str) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": question},
            ],
        }
        logger.info("[llm:secondary] IN  model=%s question_len=%d", self.model, len(question))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise FallbackTransportFailure(f"request failed: {type(e).__name__}: {e}") from e
        if not response.is_success:
            raise FallbackTransportFailure(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise FallbackContentMissing("response body is not JSON") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        content = None
        if choices and isinstance(choices[0], dict):
            msg = choices[0].get("message") or {}
            if isinstance(msg, dict):
                content = msg.get("content")
        if not isinstance(content, str) or not content.strip():
            raise FallbackContentMissing("response has no choices[0].message.content")
        out = content.strip()
        logger.info("[llm:secondary] OUT response_len=%d", len(out))
        return out
