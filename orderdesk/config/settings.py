from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = "OrderDesk"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # API Settings
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"

    # Database Settings
    DATABASE_URL: str = "sqlite:///./orderdesk.db"
    DATABASE_ECHO: bool = False

    # JWT Settings
    JWT_SECRET_KEY: str = "jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRES: int = 1800  # 30 minutes

    # CORS Settings
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Email Settings
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    NOTIFICATIONS_ENABLED: bool = False
    NOTIFICATION_SENDER: str = "orders@orderdesk.local"

    # Business Settings
    BUSINESS_TIMEZONE: str = "Asia/Colombo"
    CURRENCY: str = "LKR"
    ORDER_ID_PREFIX: str = "ORD"

    # Invoice header
    COMPANY_NAME: str = "OrderDesk Distributors"
    COMPANY_ADDRESS: str = "No. 1, Main Street, Colombo"
    COMPANY_EMAIL: str = "accounts@orderdesk.local"
    COMPANY_PHONE: str = "+94 11 000 0000"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
