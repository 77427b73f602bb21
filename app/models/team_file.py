from sqlalchemy import Column, Integer, String, BigInteger, ForeignKey, DateTime

from app.core.database import Base, utc_now

class TeamFile(Base):
    __tablename__ = "team_files"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)  # Storage location, managed by the file service
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utc_now)
