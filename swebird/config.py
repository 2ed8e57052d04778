from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    DATABASE_URL : str
    JWT_SECRET : str
    JWT_ALGORITHM : str = "HS256"
    ACCESS_TOKEN_EXPIRY_DAYS : int = 7
    DB_ECHO : bool = False
    DB_CREATE_TABLES : bool = False  # migrations own the schema in production

    CORS_ORIGINS : List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    CURRENCY_SYMBOL : str = "₹"
    DEFAULT_USAGE_LIMIT : int = 100
    DEFAULT_COUPON_VALIDITY_DAYS : int = 30

    model_config = SettingsConfigDict(
        env_file = ".env",
        extra = "ignore"
    )
