from typing import Any, AsyncGenerator, Dict, Iterable, List, Mapping, Optional

import httpx

from agent.agent_loop import AgentLoop
from agent.errors import ModelUnavailable, TurnFailed
from agent.executor import build_default_registry
from agent.gateway import ModelGateway
from agent.models import AgentTurnState, Message, Role, TurnResult
from agent.prompts import format_system_prompt
from core.client import get_client
from core.config import Settings
from core.logger import logger
from core.ratelimit import RateLimiter

# Persisted history only carries {role, content}; tool messages cannot be
# replayed without the assistant request that produced them.
REPLAYABLE_ROLES = {Role.SYSTEM, Role.USER, Role.ASSISTANT}


def history_to_messages(prior_history: Iterable[Mapping[str, Any]]) -> List[Message]:
    messages = []
    for entry in prior_history:
        role = Role(entry["role"])
        if role not in REPLAYABLE_ROLES:
            logger.debug(f"Skipping {role.value} message from prior history")
            continue
        messages.append(Message(role=role, content=entry.get("content") or ""))
    return messages


class TurnRunner:
    """Entry point for one user message: seeds the agent loop and returns its reply."""

    def __init__(self, loop: AgentLoop, max_retries: int = 0, limiter: Optional[RateLimiter] = None):
        self.loop = loop
        self.max_retries = max_retries
        self.limiter = limiter

    def build_state(self, user_text: str, prior_history: Iterable[Mapping[str, Any]] = ()) -> AgentTurnState:
        messages = history_to_messages(prior_history)
        messages.append(Message.user(user_text))
        return AgentTurnState(messages=messages)

    def _admit(self, caller: str):
        # One token per turn, taken before any attempt so retries and loop steps are free
        if self.limiter is not None:
            self.limiter.acquire(caller)

    async def run(
        self, user_text: str, prior_history: Iterable[Mapping[str, Any]] = (), caller: str = "global"
    ) -> TurnResult:
        self._admit(caller)
        prior_history = list(prior_history)
        attempt = 0
        while True:
            # Each attempt starts from fresh state; nothing from a failed attempt leaks.
            state = self.build_state(user_text, prior_history)
            try:
                await self.loop.run(state)
            except ModelUnavailable as e:
                if attempt < self.max_retries:
                    attempt += 1
                    logger.warning(f"Model unavailable, retrying turn ({attempt}/{self.max_retries}): {e}")
                    continue
                logger.error(f"Turn failed: {e}")
                raise TurnFailed("Failed to generate AI response", cause=e) from e
            return TurnResult(
                reply=state.reply,
                messages=state.messages,
                steps=state.steps,
                stop_reason=state.stop_reason,
            )

    async def run_turn(
        self, user_text: str, prior_history: Iterable[Mapping[str, Any]] = (), caller: str = "global"
    ) -> str:
        result = await self.run(user_text, prior_history, caller=caller)
        return result.reply

    async def stream(
        self, user_text: str, prior_history: Iterable[Mapping[str, Any]] = (), caller: str = "global"
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """Yields the loop's progress events. Not retried, since events were already emitted."""
        self._admit(caller)
        state = self.build_state(user_text, prior_history)
        try:
            async for event in self.loop.stream(state):
                yield event
        except ModelUnavailable as e:
            logger.error(f"Turn failed: {e}")
            raise TurnFailed("Failed to generate AI response", cause=e) from e


def build_turn_runner(settings: Settings, http_client: httpx.AsyncClient, client=None) -> TurnRunner:
    gateway = ModelGateway(
        client=client or get_client(settings),
        model=settings.MODEL_NAME,
        temperature=settings.MODEL_TEMPERATURE,
    )
    loop = AgentLoop(
        gateway=gateway,
        registry=build_default_registry(settings, http_client),
        system_prompt=format_system_prompt(settings.SYSTEM_PROMPT),
        max_steps=settings.MAX_STEPS,
        parallel_tools=settings.PARALLEL_TOOL_CALLS,
    )
    return TurnRunner(
        loop,
        max_retries=settings.MODEL_RETRIES,
        limiter=RateLimiter(settings.RATE_LIMIT_CALLS, settings.RATE_LIMIT_PERIOD),
    )
