from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    raw_arguments: Optional[str] = None  # the model's JSON text, sent back verbatim
    parse_error: Optional[str] = None


class ToolResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    tool_call_id: str
    name: str
    content: str


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str = ""
    tool_calls: Optional[List[ToolRequest]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: Optional[str], tool_calls: Optional[List[ToolRequest]] = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content or "", tool_calls=tool_calls or None)

    @classmethod
    def from_tool_result(cls, result: ToolResult) -> "Message":
        return cls(
            role=Role.TOOL,
            content=result.content,
            tool_call_id=result.tool_call_id,
            name=result.name,
        )


class PlainReply(BaseModel):
    kind: Literal["plain_reply"] = "plain_reply"
    text: str = ""


class ToolCallRequest(BaseModel):
    kind: Literal["tool_call_request"] = "tool_call_request"
    text: Optional[str] = None
    requests: List[ToolRequest]


ModelResponse = Annotated[Union[PlainReply, ToolCallRequest], Field(discriminator="kind")]


class AgentStatus(str, Enum):
    THINKING = "thinking"
    ACTING = "acting"
    DONE = "done"


class StopReason(str, Enum):
    REPLY = "reply"
    LOOP_BOUND = "loop_bound"


class AgentTurnState(BaseModel):
    """Working state of one turn. Only the agent loop mutates it."""

    messages: List[Message]
    steps: int = 0
    status: AgentStatus = AgentStatus.THINKING
    reply: Optional[str] = None
    stop_reason: Optional[StopReason] = None

    def append(self, message: Message):
        self.messages.append(message)


class TurnResult(BaseModel):
    reply: str
    messages: List[Message]
    steps: int
    stop_reason: StopReason
