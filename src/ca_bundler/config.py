"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from environment variables (DOMAIN, PORT, ROOT_MARKER, ...)
  - Fall back to a .env file in the working directory
  - Validate types and constraints before any network call is made

Command-line flags are passed as init arguments and take priority over both.
Nested settings use env_nested_delimiter="__", so VERIFY__DOMAINS maps to
verify.domains.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VERIFY_DOMAINS = ["github.com", "google.com", "stackoverflow.com"]


class VerifySettings(BaseModel):
    """Domains checked by the `verify` action."""

    domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VERIFY_DOMAINS),
        min_length=1,
        description="Domains validated against the bundle",
    )
    port: int = Field(default=443, ge=1, le=65535)

    @field_validator("domains")
    @classmethod
    def strip_domains(cls, value: list[str]) -> list[str]:
        """Reject blank entries; keep the configured order."""
        domains = [d.strip() for d in value]
        if any(not d for d in domains):
            raise ValueError("Verification domains must not be blank")
        return domains


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Init arguments (command-line flags)
      2. Environment variables
      3. .env file
      4. Default values
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    domain: str = Field(default="github.com", min_length=1, description="Host to fetch the chain from")
    port: int = Field(default=443, ge=1, le=65535)
    root_marker: str = Field(
        default="CN=SB1A-ROOT-CA",
        description="DN substring identifying the root CA in subject/issuer",
    )
    bundle_path: Path = Field(default=Path("ca-bundle.pem"))
    chain_path: Path = Field(default=Path("temp-certs.txt"))
    tls_timeout_seconds: float = Field(default=10.0, gt=0)
    verify: VerifySettings = Field(default_factory=lambda: VerifySettings())
    log_level: str = Field(default="INFO")

    @field_validator("root_marker")
    @classmethod
    def validate_root_marker(cls, value: str) -> str:
        """An empty marker would match every issuer and label everything a CA."""
        if not value.strip():
            raise ValueError("ROOT_MARKER must not be empty")
        return value.strip()
