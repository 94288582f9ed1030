"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class CognitoConfig(BaseModel):
    """Identity provider trust configuration.

    Loaded once at startup and never mutated afterwards; every service that
    checks tokens or talks to the provider receives this object explicitly.
    """

    model_config = ConfigDict(frozen=True)

    region: str = Field(default="ap-northeast-2", description="AWS region of the user pool")
    user_pool_id: str = Field(default="", description="Cognito user pool identifier")
    client_id: str = Field(default="", description="App client ID")
    client_secret: str = Field(default="", description="App client secret")
    domain: str = Field(default="", description="Hosted UI domain")
    jwks_url: str = Field(default="", description="JWKS endpoint for signature checks")
    token_endpoint: str = Field(default="", description="OAuth2 token endpoint URL")
    authorize_endpoint: str = Field(default="", description="OAuth2 authorize endpoint URL")
    logout_endpoint: str = Field(default="", description="Hosted UI logout endpoint URL")
    redirect_uri: str = Field(default="", description="Registered redirect URI")
    logout_redirect_uri: str | None = Field(
        default=None, description="Where the hosted UI sends the browser after logout"
    )
    scope: str = Field(default="openid email phone profile", description="Requested scopes")
    response_type: str = Field(default="code", description="OAuth2 response type")
    grant_type: str = Field(default="authorization_code", description="OAuth2 grant type")

    @property
    def is_trust_configured(self) -> bool:
        return bool(self.user_pool_id and self.client_id)

    @property
    def expected_issuer(self) -> str:
        """Issuer URL every accepted token must carry."""
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"


class JWTConfig(BaseModel):
    """JWT validation configuration."""

    verify_signature: bool = Field(
        default=False,
        description="Also verify RS256 signatures against the provider JWKS",
    )
    allowed_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256"],
        description="JWT algorithms allowed for signature verification",
    )
    jwks_cache_ttl: int = Field(default=3600, description="JWKS cache lifetime in seconds")
    http_timeout_seconds: float = Field(
        default=10.0, description="Timeout for calls to the identity provider"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./user_service.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="0.0.0.0", description="Application host")
    port: int = Field(default=8081, description="Application port")
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    cognito: CognitoConfig = Field(
        default_factory=CognitoConfig, description="Identity provider configuration"
    )
    jwt: JWTConfig = Field(
        default_factory=JWTConfig, description="JWT validation configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
