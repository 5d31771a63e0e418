"""Environment-based configuration for the shipment check service."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Shipment check settings, loaded from environment variables."""

    # Server
    PORT: int = 8092

    # Analysis webhook (empty = not configured, every analysis fails fast)
    ANALYSIS_WEBHOOK_URL: str = ""

    # Analysis webhook timeouts
    ANALYSIS_TIMEOUT_SECONDS: int = 60
    ANALYSIS_CONNECT_TIMEOUT: int = 10

    # Helpline shown for confidently recognised shipments
    HELPLINE_NUMBER: str = "+358 45 49 11233"
    HELPLINE_TEL: str = "+358454911233"

    # In-memory flow sessions kept before the oldest is closed
    MAX_SESSIONS: int = 500

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
