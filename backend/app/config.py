"""Application configuration"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./backstage.db"

    # Object storage (S3 / MinIO)
    s3_bucket: str = "backstage"
    s3_endpoint: str = "http://localhost:9000"
    s3_region: str = "us-east-1"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_force_path_style: bool = True  # Required for MinIO

    # Presigned URL lifetimes (seconds)
    presigned_put_ttl: int = 15 * 60
    presigned_get_ttl: int = 60 * 60
    presigned_part_ttl: int = 15 * 60

    # Uploads at or above this size go through a multipart session.
    # 5 GiB is the single PUT ceiling, so chunking stays off unless configured.
    upload_chunk_size: int = 5 * 1024 * 1024 * 1024

    # Client side
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = 30.0
    seek_poll_interval: float = 0.1
    seek_timeout: float = 5.0

    # Links
    web_url: str = "http://localhost"

    # API Configuration
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Server Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
