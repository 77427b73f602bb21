from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "TeamCollab"
    API_PREFIX: str = "/api"
    DATABASE_URL: str = "sqlite:///./teamcollab.db"

    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Invitations
    INVITATION_EXPIRY_DAYS: int = 7
    INVITATION_CLEANUP_ENABLED: bool = True
    INVITATION_CLEANUP_INTERVAL: int = 3600  # Sweep expired invitations every hour

    # Teams & chat
    DEFAULT_TEAM_COLOR: str = "#3B82F6"
    CHAT_MESSAGE_MAX_LENGTH: int = 2000
    CHAT_DEFAULT_PAGE_SIZE: int = 50

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'

settings = Settings()
