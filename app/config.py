from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"

PLACEHOLDER_MARKERS = ("test", "your-", "your_", "placeholder", "example", "xxx")


def is_placeholder_key(key: str | None, min_length: int = 20) -> bool:
    """
    Detect missing or obviously fake API keys copied from sample env files.

    Keys that look like placeholders force the mock provider so local
    development never hits a third-party API with garbage credentials.
    """
    if not key:
        return True
    lowered = key.strip().lower()
    if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
        return True
    return len(lowered) < min_length


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Database / auth
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"

    # Company enrichment (Clearbit)
    CLEARBIT_API_KEY: str | None = None
    USE_MOCK_ENRICHMENT: bool = False
    ENRICHMENT_TIMEOUT_SECONDS: float = 10.0

    # Research batching
    RESEARCH_BATCH_CONCURRENCY: int = 3
    RESEARCH_BATCH_DELAY_SECONDS: float = 1.0

    # Email delivery (SendGrid)
    SENDGRID_API_KEY: str | None = None
    SENDGRID_FROM_EMAIL: str = "noreply@conversion.ai"
    SENDGRID_FROM_NAME: str = "Conversion AI"
    SENDGRID_TIMEOUT_SECONDS: float = 15.0

    # Email generation (OpenAI)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4-turbo-preview"
    OPENAI_FALLBACK_MODEL: str = "gpt-3.5-turbo"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 1200
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def enrichment_mock_mode(self) -> bool:
        """True when company enrichment must run against the deterministic mock."""
        return self.USE_MOCK_ENRICHMENT or is_placeholder_key(self.CLEARBIT_API_KEY, 20)

    def sendgrid_configured(self) -> bool:
        return not is_placeholder_key(self.SENDGRID_API_KEY, 50)

    def openai_configured(self) -> bool:
        return not is_placeholder_key(self.OPENAI_API_KEY, 40)

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 5, "timeout": 15.0})

        return config


settings = Settings()
