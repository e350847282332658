from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="POS Checkout", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default="sqlite:///./pos_checkout.db", alias="DATABASE_URL")
    currency: str = Field(default="GHS", alias="CURRENCY")
    tax_rate: Decimal = Field(default=Decimal("0.15"), ge=0, alias="TAX_RATE")
    directory_backend: str = Field(default="sql", alias="DIRECTORY_BACKEND")  # sql | http
    backend_url: str = Field(default="http://localhost:8000", alias="BACKEND_URL")
    backend_timeout: float = Field(default=5.0, alias="BACKEND_TIMEOUT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="", alias="LOG_FILE")

    class Config:
        env_file = ".env"


settings = Settings()
