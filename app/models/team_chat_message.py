from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship

from app.core.database import Base, utc_now

MESSAGE_TYPES = ("text", "image", "file", "system")


class TeamChatMessage(Base):
    __tablename__ = "team_chat_messages"
    __table_args__ = (
        Index("ix_team_chat_messages_team_created", "team_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default="text")
    reply_to_id = Column(Integer, ForeignKey("team_chat_messages.id"), nullable=True)
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    author = relationship("User")
    reply_to = relationship("TeamChatMessage", remote_side=[id])
