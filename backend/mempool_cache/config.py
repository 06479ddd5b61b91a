"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Redis cache (disabled by default: the node runs fine without it)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str = ""
    redis_unix_socket_path: Optional[str] = None  # Takes precedence over host/port

    # Restore / sync tuning
    redis_batch_size: int = 10000  # Keys per JSON.MGET when restoring the mempool
    redis_command_timeout: float = 10.0  # Deadline for a single store call (seconds)
    redis_connect_timeout: float = 5.0
    redis_max_concurrent_commands: int = 50  # In-flight store calls; also sizes the connection pool

    # API
    api_title: str = "Mempool Cache"
    api_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"

    @property
    def redis_url(self) -> str:
        """Connection URL understood by redis.asyncio.from_url"""
        if self.redis_unix_socket_path:
            return f"unix://{self.redis_unix_socket_path}?db={self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


# Global settings instance
settings = Settings()
