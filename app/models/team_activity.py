from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON

from app.core.database import Base, utc_now

class TeamActivity(Base):
    __tablename__ = "team_collaboration"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    activity_type = Column(String(50), nullable=False, index=True)
    activity_data = Column(JSON, nullable=True)
    target_id = Column(Integer, nullable=True)
    target_type = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=utc_now)
