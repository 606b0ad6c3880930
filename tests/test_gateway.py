import json
import unittest
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai

from agent.errors import ModelUnavailable
from agent.gateway import ModelGateway, parse_tool_request, to_openai_message
from agent.models import Message, PlainReply, Role, ToolCallRequest, ToolRequest, ToolResult


def completion(content=None, tool_calls=None):
    msg = MagicMock()
    msg.content = content
    msg.tool_calls = tool_calls
    choice = MagicMock()
    choice.message = msg
    response = MagicMock()
    response.choices = [choice]
    return response


def tool_call(id, name, arguments):
    tc = MagicMock()
    tc.id = id
    tc.function.name = name
    tc.function.arguments = arguments
    return tc


def make_gateway(response=None, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return ModelGateway(client, model="test-model", temperature=0.2), client


class TestMessageConversion(unittest.TestCase):
    def test_plain_messages(self):
        self.assertEqual(to_openai_message(Message.user("hi")), {"role": "user", "content": "hi"})
        self.assertEqual(to_openai_message(Message.assistant("yo")), {"role": "assistant", "content": "yo"})

    def test_assistant_tool_calls_keep_raw_arguments(self):
        request = ToolRequest(id="c1", name="get_weather", arguments={"location": "Paris"}, raw_arguments='{"location":"Paris"}')
        wire = to_openai_message(Message.assistant(None, tool_calls=[request]))
        self.assertIsNone(wire["content"])
        self.assertEqual(wire["tool_calls"][0]["id"], "c1")
        self.assertEqual(wire["tool_calls"][0]["function"]["arguments"], '{"location":"Paris"}')

    def test_assistant_tool_calls_without_raw_arguments(self):
        request = ToolRequest(id="c1", name="get_news", arguments={"query": "x"})
        wire = to_openai_message(Message.assistant("", tool_calls=[request]))
        self.assertEqual(json.loads(wire["tool_calls"][0]["function"]["arguments"]), {"query": "x"})

    def test_tool_message(self):
        result = ToolResult(tool_call_id="c1", name="get_weather", content="sunny")
        self.assertEqual(
            to_openai_message(Message.from_tool_result(result)),
            {"role": "tool", "tool_call_id": "c1", "name": "get_weather", "content": "sunny"},
        )


class TestParseToolRequest(unittest.TestCase):
    def test_valid_json(self):
        request = parse_tool_request(tool_call("c1", "get_weather", '{"location": "Paris"}'))
        self.assertEqual(request.arguments, {"location": "Paris"})
        self.assertIsNone(request.parse_error)

    def test_empty_arguments(self):
        request = parse_tool_request(tool_call("c1", "get_news", ""))
        self.assertEqual(request.arguments, {})
        self.assertIsNone(request.parse_error)

    def test_invalid_json(self):
        request = parse_tool_request(tool_call("c1", "get_news", '{"query": '))
        self.assertIn("not valid JSON", request.parse_error)
        self.assertEqual(request.raw_arguments, '{"query": ')

    def test_non_object_json(self):
        request = parse_tool_request(tool_call("c1", "get_news", '["x"]'))
        self.assertEqual(request.parse_error, "arguments must be a JSON object")


class TestModelGateway(unittest.IsolatedAsyncioTestCase):
    async def test_plain_reply(self):
        gateway, client = make_gateway(completion(content="Hello there"))
        history = [Message.user("hi")]

        response = await gateway.complete("persona", history, [])

        self.assertIsInstance(response, PlainReply)
        self.assertEqual(response.text, "Hello there")
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "persona"})
        self.assertEqual(kwargs["messages"][1], {"role": "user", "content": "hi"})
        self.assertNotIn("tools", kwargs)
        # History is not touched by the call
        self.assertEqual(history, [Message.user("hi")])

    async def test_tool_call_request(self):
        calls = [
            tool_call("c1", "get_weather", '{"location": "Paris"}'),
            tool_call("c2", "get_news", '{"query": "Paris"}'),
        ]
        gateway, client = make_gateway(completion(content="Checking.", tool_calls=calls))
        tools = [{"type": "function", "function": {"name": "get_weather"}}]

        response = await gateway.complete("persona", [Message.user("Paris?")], tools)

        self.assertIsInstance(response, ToolCallRequest)
        self.assertEqual(response.text, "Checking.")
        self.assertEqual([r.id for r in response.requests], ["c1", "c2"])
        self.assertEqual(response.requests[1].arguments, {"query": "Paris"})
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["tools"], tools)
        self.assertEqual(kwargs["tool_choice"], "auto")

    async def test_provider_error(self):
        error = openai.APIConnectionError(request=httpx.Request("POST", "https://example.com"))
        gateway, _ = make_gateway(side_effect=error)
        with self.assertRaises(ModelUnavailable):
            await gateway.complete("persona", [Message.user("hi")], [])

    async def test_no_choices(self):
        response = completion()
        response.choices = []
        gateway, _ = make_gateway(response)
        with self.assertRaises(ModelUnavailable):
            await gateway.complete("persona", [Message.user("hi")], [])

    async def test_roles_survive_round_trip(self):
        gateway, client = make_gateway(completion(content="ok"))
        request = ToolRequest(id="c1", name="get_weather", arguments={"location": "Oslo"})
        history = [
            Message.user("Oslo?"),
            Message.assistant(None, tool_calls=[request]),
            Message.from_tool_result(ToolResult(tool_call_id="c1", name="get_weather", content="cold")),
        ]
        await gateway.complete("persona", history, [])
        roles = [m["role"] for m in client.chat.completions.create.call_args.kwargs["messages"]]
        self.assertEqual(roles, ["system", "user", "assistant", "tool"])
        self.assertEqual(history[1].role, Role.ASSISTANT)


if __name__ == '__main__':
    unittest.main()
