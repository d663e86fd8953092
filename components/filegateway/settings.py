from __future__ import annotations
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "filegateway"

class GatewaySettings(BaseSettings):
    """Process-wide configuration; built once at startup and never mutated."""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, frozen=True, extra="ignore")

    app_version: str = Field(default="0.1.0")
    environment: Literal["dev", "production"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4006)

    # Metadata backend (GraphQL)
    metadata_url_local: str = Field(default="http://localhost:4004/graphql")
    metadata_url_production: Optional[str] = None
    metadata_timeout_seconds: float = Field(default=10.0, gt=0)

    # fetch-by-url
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    fetch_max_bytes: int = Field(default=50 * 1024 * 1024, gt=0)  # 50 MiB; also caps image input to the transcoder

    # Object store
    blob_adapter: str = Field(default="s3")  # "s3" | "localfs"
    blob_local_root: str = Field(default="./var/blobdata")
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_force_path_style: bool = True

    # Origin allow-list: a domain also admits its subdomains; hosts match as origin suffix
    cors_allowed_domains: List[str] = Field(default_factory=list)
    cors_allowed_hosts: List[str] = Field(default_factory=lambda: [
        "localhost:3000", "localhost:4000", "0.0.0.0:3000", "0.0.0.0:4000", "localhost:19006",
    ])

    rate_limit_per_minute: int = Field(default=1000, gt=0)

    @model_validator(mode="after")
    def _production_needs_backend(self) -> "GatewaySettings":
        if self.environment == "production" and not self.metadata_url_production:
            raise ValueError("metadata_url_production is required when environment=production")
        return self

    @property
    def metadata_url(self) -> str:
        if self.environment == "production":
            return self.metadata_url_production  # type: ignore[return-value]
        return self.metadata_url_local

@lru_cache(maxsize=1)
def get_settings() -> GatewaySettings:
    return GatewaySettings()
