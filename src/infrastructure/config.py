from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # --- Backend API ---
    API_BASE_URL: str = "http://localhost:3001"
    API_TIMEOUT_SECONDS: float = Field(30.0, gt=0)
    API_ACCESS_TOKEN: str = ""  # Passed through as a bearer token when set

    # --- Retry policy ---
    RETRY_MAX_ATTEMPTS: int = Field(3, ge=1)
    RETRY_BASE_DELAY_SECONDS: float = Field(0.5, ge=0)
    RETRY_JITTER_SECONDS: float = Field(0.15, ge=0)
    RETRY_AFTER_CAP_SECONDS: float = Field(10.0, gt=0)

    # --- Trivia defaults ---
    DEFAULT_QUESTION_TIME_SECONDS: int = Field(60, ge=1)
    # Offset applied to naive activation timestamps (-05:00 by default)
    ACTIVATION_UTC_OFFSET_MINUTES: int = Field(-300, ge=-14 * 60, le=14 * 60)

    # --- Logging ---
    LOG_LEVEL: str = "INFO"


# Load settings
settings = Settings()
