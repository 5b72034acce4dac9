from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./evcharge.db"
    DATABASE_ECHO: bool = False

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # QR session tokens
    QR_TOKEN_BYTES: int = 12

    # Session start window: from this many minutes before a booking starts until it ends
    ENFORCE_SESSION_WINDOW: bool = True
    SESSION_EARLY_START_MINUTES: int = 15

    # Application
    PROJECT_NAME: str = "EV Charging Console"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "standard"

    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
