import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import select

from backend.core.database import get_session_factory
from backend.models import Chat, ChatMessage
from core.config import settings


class ChatNotFound(Exception):
    pass


class ChatRepository:
    def __init__(self, engine: AsyncEngine = None, title_length: int = settings.CHAT_TITLE_LENGTH):
        self.sessions = get_session_factory(engine)
        self.title_length = title_length

    async def create_chat(self, user_id: str, title: str) -> str:
        async with self.sessions() as session:
            chat = Chat(id=str(uuid.uuid4()), user_id=user_id, title=title[: self.title_length])
            session.add(chat)
            await session.commit()
            return chat.id

    async def get_chat(self, chat_id: str, user_id: str) -> Optional[Chat]:
        async with self.sessions() as session:
            stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
            result = await session.exec(stmt)
            return result.first()

    async def get_or_create_chat(self, user_id: str, chat_id: Optional[str], first_message: str) -> str:
        if chat_id:
            # An existing id is only honoured for its owner
            if not await self.get_chat(chat_id, user_id):
                raise ChatNotFound(chat_id)
            return chat_id
        return await self.create_chat(user_id, first_message)

    async def append_message(self, chat_id: str, role: str, content: str):
        async with self.sessions() as session:
            chat = await session.get(Chat, chat_id)
            if chat is None:
                raise ChatNotFound(chat_id)
            message = ChatMessage(chat_id=chat_id, role=role, content=content)
            chat.updated_at = datetime.utcnow()
            session.add(message)
            session.add(chat)
            await session.commit()

    async def list_messages(self, chat_id: str) -> List[dict]:
        async with self.sessions() as session:
            stmt = select(ChatMessage).where(ChatMessage.chat_id == chat_id).order_by(ChatMessage.id)
            result = await session.exec(stmt)
            return [
                {"id": m.id, "role": m.role, "content": m.content, "created_at": m.created_at}
                for m in result.all()
            ]

    async def list_chats(self, user_id: str) -> List[Chat]:
        async with self.sessions() as session:
            stmt = select(Chat).where(Chat.user_id == user_id).order_by(Chat.updated_at.desc())
            result = await session.exec(stmt)
            return list(result.all())

    async def update_chat_title(self, chat_id: str, title: str):
        async with self.sessions() as session:
            chat = await session.get(Chat, chat_id)
            if chat is None:
                raise ChatNotFound(chat_id)
            chat.title = title[: self.title_length]
            session.add(chat)
            await session.commit()

    async def delete_chat(self, chat_id: str, user_id: str) -> bool:
        async with self.sessions() as session:
            stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
            chat = (await session.exec(stmt)).first()
            if not chat:
                return False

            # Delete messages first, sqlite does not enforce the FK cascade
            msg_stmt = select(ChatMessage).where(ChatMessage.chat_id == chat_id)
            results = await session.exec(msg_stmt)
            for msg in results.all():
                await session.delete(msg)

            await session.delete(chat)
            await session.commit()
            return True
