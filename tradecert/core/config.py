# tradecert/core/config.py
import os
from typing import ClassVar
from pydantic import BaseModel, Field

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'tradecert.db')}")

class Settings(BaseModel):
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120")))
    TIMEZONE: str = Field(default_factory=lambda: os.getenv("TIMEZONE", "Asia/Bangkok"))
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # certification window
    CERTIFICATION_YEARS: int = Field(default_factory=lambda: int(os.getenv("CERTIFICATION_YEARS", "2")))
    RENEWAL_YEARS: int = Field(default_factory=lambda: int(os.getenv("RENEWAL_YEARS", "1")))
    CODE_GRACE_HOURS: int = Field(default_factory=lambda: int(os.getenv("CODE_GRACE_HOURS", "2")))

    # checkout gateway
    STRIPE_API_KEY: str = Field(default_factory=lambda: os.getenv("STRIPE_API_KEY", ""))
    STRIPE_API_BASE: str = Field(default_factory=lambda: os.getenv("STRIPE_API_BASE", "https://api.stripe.com"))
    STRIPE_WEBHOOK_SECRET: str = Field(default_factory=lambda: os.getenv("STRIPE_WEBHOOK_SECRET", ""))
    WEBHOOK_TOLERANCE_SECONDS: int = Field(default_factory=lambda: int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300")))
    FRONTEND_URL: str = Field(default_factory=lambda: os.getenv("FRONTEND_URL", "http://localhost:3000"))
    DEFAULT_CURRENCY: str = Field(default_factory=lambda: os.getenv("DEFAULT_CURRENCY", "THB"))

    # seed admin
    ADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("ADMIN_EMAIL", "admin@tradecert.local"))
    ADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("ADMIN_PASSWORD", "admin12345"))

settings = Settings()
