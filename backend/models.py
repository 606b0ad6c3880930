from typing import Optional, List
from datetime import datetime
from sqlmodel import Field, SQLModel, Relationship

class Chat(SQLModel, table=True):
    id: Optional[str] = Field(default=None, primary_key=True) # UUID
    user_id: str = Field(index=True)
    title: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    messages: List["ChatMessage"] = Relationship(back_populates="chat")

class ChatMessage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    chat_id: str = Field(foreign_key="chat.id", index=True)
    role: str # user, assistant
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    chat: Optional[Chat] = Relationship(back_populates="messages")
