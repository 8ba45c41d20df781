"""Service configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEMP_DIR = Path("/tmp")


class Settings(BaseSettings):
    """turbogha configuration.

    Remote cache credentials come from the CI runner environment
    (ACTIONS_CACHE_URL / ACTIONS_RUNTIME_TOKEN). When either is missing the
    cache falls back to the local filesystem.
    """

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    # Remote cache service
    ACTIONS_CACHE_URL: str = ""
    ACTIONS_RUNTIME_TOKEN: str = ""

    # Runner environment
    RUNNER_TEMP: str = ""

    # Cache behaviour
    TURBOGHA_CACHE_PREFIX: str = "turbogha_"
    TURBOGHA_BACKEND: str = "presigned"  # "presigned" or "staged"
    TURBOGHA_TIMEOUT: float = 120.0
    TURBOGHA_UPLOAD_CHUNK_SIZE: int = Field(default=32 * 1024 * 1024, gt=0)

    # Server
    TURBOGHA_SERVER_HOST: str = "127.0.0.1"
    TURBOGHA_SERVER_PORT: int = 41230
    TURBOGHA_SERVER_TOKEN: str = ""

    @property
    def valid(self) -> bool:
        """Whether the remote cache service can be used."""
        return bool(self.ACTIONS_CACHE_URL and self.ACTIONS_RUNTIME_TOKEN)

    @property
    def cache_url(self) -> str:
        return self.ACTIONS_CACHE_URL.rstrip("/")

    @property
    def temp_dir(self) -> Path:
        """Directory holding filesystem cache entries and staging files."""
        return Path(self.RUNNER_TEMP) if self.RUNNER_TEMP else DEFAULT_TEMP_DIR

    @property
    def server_log_file(self) -> Path:
        return self.temp_dir / "turbogha.log"


settings = Settings()
