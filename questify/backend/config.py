from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "change-me"


class Settings(BaseSettings):
    # Tokens
    db_secret_key: str = DEFAULT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    token_expires_in: int = 3600
    strict_session_tokens: bool = False

    # Passwords
    bcrypt_rounds: int = 10

    # Storage
    db_path: str = "questify.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = ""

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
