from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"
    # Stored as comma-separated strings to avoid pydantic-settings
    # complex type parsing (json.loads) which fails on plain CSV values.
    cors_origins: str = "http://localhost:3000"
    api_keys: str = ""
    log_level: str = "INFO"

    # Retry hint sent with every event, in milliseconds (0 = not sent).
    retry_interval_ms: int = Field(0, ge=0)
    # Per-client queue bound; 0 = unbounded.
    client_queue_maxsize: int = Field(64, ge=0)
    ping_interval: int = 15
    # Extra response headers on event streams, as a JSON object.
    stream_headers: dict[str, str] = {}

    def get_cors_origins(self) -> list[str]:
        return [s.strip() for s in self.cors_origins.split(",") if s.strip()]

    def get_api_keys(self) -> list[str]:
        if not self.api_keys:
            return []
        return [s.strip() for s in self.api_keys.split(",") if s.strip()]

    def validate_production(self) -> None:
        if self.environment == "production":
            if not self.get_api_keys():
                raise ValueError(
                    "API_KEYS must be set in production. "
                    "Provide at least one API key via API_KEYS environment variable."
                )
            for origin in self.get_cors_origins():
                if "localhost" in origin or "127.0.0.1" in origin:
                    raise ValueError(
                        f"CORS origin '{origin}' contains localhost. "
                        "Remove localhost origins in production."
                    )


settings = Settings()
