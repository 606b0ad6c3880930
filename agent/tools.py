from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from agent.errors import ToolExecutionFailure, ToolValidationFailure
from agent.models import ToolRequest, ToolResult
from core.logger import logger

Executor = Callable[[Any], Awaitable[str]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: Type[BaseModel]
    executor: Executor

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()


class ToolRegistry:
    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, name: str, input_model: Type[BaseModel], executor: Executor, description: str = "") -> Tool:
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        tool = Tool(name=name, description=description, input_model=input_model, executor=executor)
        self._tools[name] = tool
        return tool

    def lookup(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list(self) -> List[Dict[str, Any]]:
        return [
            {"name": t.name, "description": t.description, "input_schema": t.input_schema}
            for t in self._tools.values()
        ]

    def to_openai_tools(self) -> List[Dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": entry["name"],
                    "description": entry["description"],
                    "parameters": entry["input_schema"],
                },
            }
            for entry in self.list()
        ]

    def _validate(self, tool: Tool, request: ToolRequest) -> BaseModel:
        if request.parse_error:
            raise ToolValidationFailure(f"Invalid arguments for tool '{tool.name}': {request.parse_error}")
        try:
            return tool.input_model.model_validate(request.arguments)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise ToolValidationFailure(f"Invalid arguments for tool '{tool.name}': {problems}")

    async def _execute(self, tool: Tool, args: BaseModel) -> str:
        try:
            return await tool.executor(args)
        except Exception as e:
            # Cancellation is a BaseException and is left to propagate
            raise ToolExecutionFailure(f"Error executing tool '{tool.name}': {e}") from e

    async def invoke(self, request: ToolRequest) -> ToolResult:
        """Run one request. Never raises for tool-side problems; they become the result text."""
        tool = self.lookup(request.name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {request.name}")
            return ToolResult(
                tool_call_id=request.id,
                name=request.name,
                content=f"Tool '{request.name}' is not available",
            )

        try:
            args = self._validate(tool, request)
            content = await self._execute(tool, args)
        except ToolValidationFailure as e:
            logger.info(str(e), extra={"context": {"tool": tool.name, "tool_call_id": request.id}})
            content = str(e)
        except ToolExecutionFailure as e:
            logger.error(str(e), exc_info=True, extra={"context": {"tool": tool.name, "tool_call_id": request.id}})
            content = str(e)

        return ToolResult(tool_call_id=request.id, name=tool.name, content=content)
