"""
SQLAlchemy database models
"""
from sqlalchemy import Column, String, DateTime, Text, Integer, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class Chat(Base):
    """A conversation owned by one user"""
    __tablename__ = "chats"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=True)
    visibility = Column(String, nullable=False, default="private", server_default="private")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    messages = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.sequence",
    )


class ChatMessage(Base):
    """
    One message of a conversation, stored in OpenAI format

    Rows are append-only; `sequence` orders them within the chat and is
    unique per chat.
    """
    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True)
    chat_id = Column(String, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False)  # 'user', 'assistant', 'tool'
    content = Column(Text, nullable=True)
    sequence = Column(Integer, nullable=False)

    # Assistant messages
    tool_calls = Column(JSON, nullable=True)

    # Tool result messages
    tool_call_id = Column(String, nullable=True)
    name = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    chat = relationship("Chat", back_populates="messages")

    __table_args__ = (
        UniqueConstraint("chat_id", "sequence", name="uq_chat_messages_chat_id_sequence"),
    )
