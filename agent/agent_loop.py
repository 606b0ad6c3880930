import asyncio
from typing import Any, AsyncGenerator, Dict, List, Optional

from agent.gateway import ModelGateway
from agent.models import (
    AgentStatus,
    AgentTurnState,
    Message,
    PlainReply,
    StopReason,
    ToolRequest,
    ToolResult,
)
from agent.tools import ToolRegistry
from core.logger import logger

FALLBACK_REPLY = "I wasn't able to finish that request within the allowed number of steps."


class AgentLoop:
    """Alternates model calls and tool execution until the model answers in plain text.

    ``max_steps`` bounds the number of completed tool round-trips. A tool request
    arriving once the bound is reached ends the turn with the latest text the
    model produced, or FALLBACK_REPLY if it never produced any.
    """

    def __init__(self, gateway: ModelGateway, registry: ToolRegistry, system_prompt: str, max_steps: int = 10, parallel_tools: bool = True):
        if max_steps < 0:
            raise ValueError("max_steps must be >= 0")
        self.gateway = gateway
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_steps = max_steps
        self.parallel_tools = parallel_tools

    async def _act(self, requests: List[ToolRequest]) -> List[ToolResult]:
        if self.parallel_tools and len(requests) > 1:
            # gather keeps the results in request order
            return list(await asyncio.gather(*(self.registry.invoke(r) for r in requests)))
        results = []
        for request in requests:
            results.append(await self.registry.invoke(request))
        return results

    def _finish(self, state: AgentTurnState, reply: str, reason: StopReason):
        state.append(Message.assistant(reply))
        state.reply = reply
        state.stop_reason = reason
        state.status = AgentStatus.DONE

    async def stream(self, state: AgentTurnState) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Drives the state machine and yields progress events.
        Yields dict: {"type": "status"|"tool_call"|"tool_result"|"reply", ...}
        """
        tools = self.registry.to_openai_tools()
        last_text: Optional[str] = None

        while state.status != AgentStatus.DONE:
            state.status = AgentStatus.THINKING
            yield {"type": "status", "content": "Thinking..."}
            response = await self.gateway.complete(self.system_prompt, state.messages, tools)

            if isinstance(response, PlainReply):
                self._finish(state, response.text, StopReason.REPLY)
                break

            if response.text:
                last_text = response.text

            if state.steps >= self.max_steps:
                logger.warning(
                    f"Max steps reached ({self.max_steps}); dropping {len(response.requests)} tool request(s)",
                    extra={"context": {"steps": state.steps}},
                )
                self._finish(state, last_text or FALLBACK_REPLY, StopReason.LOOP_BOUND)
                break

            state.append(Message.assistant(response.text, tool_calls=response.requests))
            state.status = AgentStatus.ACTING
            for request in response.requests:
                logger.info(f"Tool Call: {request.name} args={request.raw_arguments}")
                yield {"type": "tool_call", "id": request.id, "name": request.name, "arguments": request.arguments}

            results = await self._act(response.requests)
            for result in results:
                state.append(Message.from_tool_result(result))
                yield {"type": "tool_result", "id": result.tool_call_id, "name": result.name, "content": result.content}

            state.steps += 1

        yield {"type": "reply", "content": state.reply, "stop_reason": state.stop_reason.value}

    async def run(self, state: AgentTurnState) -> AgentTurnState:
        async for _ in self.stream(state):
            pass
        return state
