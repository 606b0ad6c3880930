import json
from typing import Any, Dict, List

import openai
from openai import AsyncOpenAI

from agent.errors import ModelUnavailable
from agent.models import Message, ModelResponse, PlainReply, Role, ToolCallRequest, ToolRequest
from core.logger import logger


def to_openai_message(message: Message) -> Dict[str, Any]:
    if message.role == Role.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "name": message.name,
            "content": message.content,
        }
    if message.role == Role.ASSISTANT and message.tool_calls:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [
                {
                    "id": request.id,
                    "type": "function",
                    "function": {
                        "name": request.name,
                        "arguments": request.raw_arguments
                        if request.raw_arguments is not None
                        else json.dumps(request.arguments),
                    },
                }
                for request in message.tool_calls
            ],
        }
    return {"role": message.role.value, "content": message.content}


def parse_tool_request(tool_call) -> ToolRequest:
    raw = tool_call.function.arguments or ""
    arguments: Dict[str, Any] = {}
    parse_error = None
    try:
        decoded = json.loads(raw) if raw.strip() else {}
        if isinstance(decoded, dict):
            arguments = decoded
        else:
            parse_error = "arguments must be a JSON object"
    except json.JSONDecodeError as e:
        parse_error = f"arguments are not valid JSON ({e.msg})"
    return ToolRequest(
        id=tool_call.id,
        name=tool_call.function.name,
        arguments=arguments,
        raw_arguments=raw,
        parse_error=parse_error,
    )


class ModelGateway:
    """Single completion call against an OpenAI-compatible chat endpoint.

    The system instruction is prepended on every call and never stored in the
    history. No retries are attempted here; failures surface as ModelUnavailable.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature

    async def complete(
        self,
        system_instruction: str,
        history: List[Message],
        tools: List[Dict[str, Any]],
    ) -> ModelResponse:
        messages = [{"role": "system", "content": system_instruction}]
        messages.extend(to_openai_message(m) for m in history)

        kwargs: Dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            logger.info(f"Calling LLM with {len(messages)} messages")
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                **kwargs,
            )
        except openai.OpenAIError as e:
            logger.error(f"LLM API Error: {e}", exc_info=True)
            raise ModelUnavailable(f"Error calling LLM: {e}") from e

        if not response.choices:
            raise ModelUnavailable("LLM returned no choices")

        msg = response.choices[0].message
        if msg.tool_calls:
            requests = [parse_tool_request(tc) for tc in msg.tool_calls]
            return ToolCallRequest(text=msg.content or None, requests=requests)
        return PlainReply(text=msg.content or "")
