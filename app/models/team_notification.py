from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, JSON

from app.core.database import Base, utc_now

class TeamNotification(Base):
    __tablename__ = "team_notifications"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notification_type = Column(String(50), nullable=False)  # e.g. member_joined, message_received
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utc_now)
