from sqlalchemy import Column, Integer, ForeignKey, DateTime

from app.core.database import Base, utc_now

class ChatReadReceipt(Base):
    __tablename__ = "team_chat_read_status"

    # One receipt per (message, user); the composite key enforces it.
    message_id = Column(Integer, ForeignKey("team_chat_messages.id"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True, index=True)
    read_at = Column(DateTime, default=utc_now, nullable=False)
