"""Application configuration using pydantic-settings."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[3] / ".env"),
        case_sensitive=False,
    )

    # Application
    log_level: str = "INFO"
    app_mode: str = "demo"
    seed_fixtures: bool = True

    # State journal
    state_db_path: str = "./data/trackas_state.db"
    journal_max_entries: int = 5000

    # Auth / local storage emulation
    auth_enabled: bool = False
    token_storage_path: str = "./data/local_storage.json"
    token_storage_key: str = "trackas_token"
    token_ttl_seconds: int = 24 * 60 * 60

    # Simulated services
    mock_latency_seconds: float = 0.0
    pricing_base_rate: float = 15.0  # INR per km

    def normalized_app_mode(self) -> str:
        mode = (self.app_mode or "").strip().lower()
        return mode if mode in {"demo", "production"} else "production"

    def is_demo_mode(self) -> bool:
        return self.normalized_app_mode() == "demo"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
