"""Application settings using Pydantic BaseSettings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application configuration
    log_level: str = "INFO"
    log_format: str = "console"

    # Service info
    service_name: str = "moderngov-mcp"
    service_version: str = "0.1.0"

    # Upstream HTTP
    rate_limit_interval: float = 1.0  # seconds between requests per origin
    request_timeout: float = 30.0
    user_agent: str = "moderngov-mcp/0.1.0"

    # Endpoint resolution
    service_script: str = "mgWebService.asmx"
    service_sub_paths: str = "democracy"  # Comma-separated path segments

    # Fallback committee for GetAllMeetingsByDate, unset = built-in default
    default_committee_id: int | None = None

    # Reference dataset, empty = bundled councils.json
    councils_path: str = ""

    def sub_path_list(self) -> list[str]:
        """Split the comma-separated sub-path setting."""
        return [part.strip().strip("/") for part in self.service_sub_paths.split(",") if part.strip()]


# Global settings instance
settings = Settings()
