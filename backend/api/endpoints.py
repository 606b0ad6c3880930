import json
from typing import Any, Dict, List, Literal, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from agent.errors import TurnFailed
from agent.service import TurnRunner
from backend.core.auth import get_user_id
from backend.core.session import ChatNotFound, ChatRepository
from core.logger import logger
from core.ratelimit import RateLimitExceeded

router = APIRouter()

class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: Optional[str] = None
    parts: Optional[List[Dict[str, Any]]] = None

class ChatRequest(BaseModel):
    messages: List[ChatMessageIn] = []
    chatId: Optional[str] = None

def extract_text(message: ChatMessageIn) -> str:
    if message.content:
        return message.content
    if message.parts:
        return "".join(p.get("text", "") for p in message.parts if p.get("type") == "text")
    return ""

def get_repository(request: Request) -> ChatRepository:
    return request.app.state.repository

def get_turn_runner(request: Request) -> TurnRunner:
    return request.app.state.turn_runner

async def start_turn(body: ChatRequest, user_id: str, repo: ChatRepository) -> Tuple[str, str, List[dict]]:
    """Validates the request, resolves the chat and stores the user message.

    Returns (chat_id, user_text, prior_history).
    """
    if not body.messages:
        raise HTTPException(status_code=400, detail="No messages provided")

    last_message = body.messages[-1]
    if last_message.role != "user":
        raise HTTPException(status_code=400, detail="Last message must be from user")

    user_text = extract_text(last_message)

    try:
        chat_id = await repo.get_or_create_chat(user_id, body.chatId, user_text)
    except ChatNotFound:
        raise HTTPException(status_code=404, detail="Chat not found")

    history = [{"role": m.role, "content": extract_text(m)} for m in body.messages[:-1]]
    if not history and body.chatId:
        # Client sent only the new message; replay what we have stored
        history = [{"role": m["role"], "content": m["content"]} for m in await repo.list_messages(chat_id)]

    try:
        await repo.append_message(chat_id, "user", user_text)
    except Exception as e:
        logger.error(f"Error saving user message: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save user message")

    return chat_id, user_text, history

async def save_reply(repo: ChatRepository, chat_id: str, reply: str):
    try:
        await repo.append_message(chat_id, "assistant", reply)
    except Exception as e:
        # The reply is still returned to the user
        logger.error(f"Error saving assistant message: {e}", exc_info=True)

@router.post("/chat")
async def chat(
    body: ChatRequest,
    response: Response,
    user_id: str = Depends(get_user_id),
    repo: ChatRepository = Depends(get_repository),
    runner: TurnRunner = Depends(get_turn_runner),
):
    chat_id, user_text, history = await start_turn(body, user_id, repo)

    try:
        reply = await runner.run_turn(user_text, history, caller=user_id)
    except RateLimitExceeded as e:
        raise HTTPException(status_code=429, detail=str(e), headers={"Retry-After": str(int(e.retry_after) + 1)})
    except TurnFailed:
        raise HTTPException(status_code=500, detail="Failed to generate AI response")

    await save_reply(repo, chat_id, reply)

    response.headers["X-Chat-Id"] = chat_id
    return {"message": reply, "chatId": chat_id}

@router.post("/chat/stream")
async def chat_stream(
    body: ChatRequest,
    response: Response,
    user_id: str = Depends(get_user_id),
    repo: ChatRepository = Depends(get_repository),
    runner: TurnRunner = Depends(get_turn_runner),
):
    chat_id, user_text, history = await start_turn(body, user_id, repo)

    async def generate():
        # Client disconnects cancel this generator and the calls it awaits
        yield json.dumps({"type": "chat", "chatId": chat_id}) + "\n"
        try:
            async for event in runner.stream(user_text, history, caller=user_id):
                if event["type"] == "reply":
                    await save_reply(repo, chat_id, event["content"])
                yield json.dumps(event) + "\n"
        except RateLimitExceeded as e:
            yield json.dumps({"type": "error", "content": str(e)}) + "\n"
        except TurnFailed:
            yield json.dumps({"type": "error", "content": "Failed to generate AI response"}) + "\n"

    streaming = StreamingResponse(generate(), media_type="application/x-ndjson", headers={"X-Chat-Id": chat_id})
    for cookie in response.headers.getlist("set-cookie"):
        streaming.headers.append("set-cookie", cookie)
    return streaming

@router.get("/chats")
async def list_chats(user_id: str = Depends(get_user_id), repo: ChatRepository = Depends(get_repository)):
    chats = await repo.list_chats(user_id)
    return [
        {
            "id": c.id,
            "title": c.title,
            "created_at": c.created_at,
            "updated_at": c.updated_at,
        }
        for c in chats
    ]

@router.get("/chats/{chat_id}/messages")
async def get_chat_messages(chat_id: str, user_id: str = Depends(get_user_id), repo: ChatRepository = Depends(get_repository)):
    if not await repo.get_chat(chat_id, user_id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return await repo.list_messages(chat_id)

@router.delete("/chats/{chat_id}")
async def delete_chat(chat_id: str, user_id: str = Depends(get_user_id), repo: ChatRepository = Depends(get_repository)):
    if not await repo.delete_chat(chat_id, user_id):
        raise HTTPException(status_code=404, detail="Chat not found")
    return {"status": "success", "message": "Chat deleted"}
