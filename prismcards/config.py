from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "PrismCards"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/prismcards"

    # Seed for the system config row when it is first created.
    # Existing profiles keep the limit they were created with.
    default_card_limit: int = 30

    # Identity provider token lookup (external collaborator)
    identity_lookup_url: str = "https://identitytoolkit.googleapis.com/v1/accounts:lookup"
    identity_api_key: str = ""
    identity_timeout: float = 10.0

    cors_origins: list[str] = [
        "https://prism-cards.com",
        "https://www.prism-cards.com",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    unlock_key_prefix: str = "PRISM"
    unlock_key_max_attempts: int = 5


settings = Settings()


# =============================================================================
# SENTINELS
# =============================================================================

# card_limit / max_uses value meaning "no ceiling"
UNLIMITED = -1
