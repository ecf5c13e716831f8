from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
import os

class Settings(BaseSettings):
    APP_NAME: str = "OpsDesk"
    VERSION: str = "1.0.0"
    DATABASE_URL: str = os.getenv("OPSDESK_DATABASE_URL", "sqlite:///./opsdesk.db")
    SECRET_KEY: str = "opsdesk-secret-key-change-me"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LIBRARY_LOG_LEVEL: str = "WARNING"

    # Identity
    REQUIRE_AUTH: bool = False
    DEFAULT_OPERATOR: Optional[str] = "operator"

    # Command execution
    TRANSPORT: str = "scripted"  # scripted, ssh
    COMMAND_TIMEOUT_SECONDS: float = 60.0
    ORPHAN_GRACE_SECONDS: float = 30.0

    # Scripted transport
    SCRIPTED_MIN_DELAY_MS: int = 500
    SCRIPTED_MAX_DELAY_MS: int = 3500
    SCRIPTED_FAILURE_RATE: float = 0.1

    # SSH transport
    SSH_CONNECT_TIMEOUT: float = 10.0
    SSH_KNOWN_HOSTS: Optional[str] = None  # None disables host key checking

    # History views
    JOB_HISTORY_LIMIT: int = 50
    AUDIT_HISTORY_LIMIT: int = 100

    SEED_DEMO_DATA: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "OPSDESK_"

@lru_cache()
def get_settings():
    return Settings()
