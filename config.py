"""Configuration for the Nucleares exporter"""
from pathlib import Path
from typing import Optional, Literal
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Exporter configuration with Pydantic validation and environment-based settings"""

    # Upstream simulation server (required)
    nucleares_url: str = Field(..., description="Base URL of the Nucleares webserver")

    # Server settings
    metrics_port: int = Field(default=3000, ge=1, le=65535, description="HTTP server port")
    metrics_host: str = Field(default="0.0.0.0", description="HTTP server host")
    metric_prefix: str = Field(default="nucleares", description="Prefix for exported metric names")
    static_dir: Optional[Path] = Field(default=None, description="Directory served at / when present")

    # Upstream timeouts
    probe_timeout: float = Field(default=3.0, gt=0, description="Liveness probe timeout in seconds")
    request_timeout: float = Field(default=8.0, gt=0, description="Data and control request timeout in seconds")
    liveness_probe_enabled: bool = Field(default=True, description="Probe upstream before discovery and refresh")
    discover_on_startup: bool = Field(default=True, description="Run variable discovery when the server starts")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO", description="Log level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")
    enable_request_logging: bool = Field(default=True, description="Enable HTTP request logging")

    # Service settings
    service_name: str = Field(default="nucleares-exporter", description="Service name")
    service_version: str = Field(default="1.0.0", description="Service version")

    class Config:
        env_prefix = ""
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @validator('nucleares_url')
    def validate_nucleares_url(cls, v):
        """Require an http(s) URL and drop trailing slashes"""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("NUCLEARES_URL must be an http:// or https:// URL")
        return v.rstrip('/')

    @validator('metric_prefix')
    def validate_metric_prefix(cls, v):
        """Metric prefix must already be a safe metric identifier"""
        from upstream.parser import sanitise_metric_name
        cleaned = sanitise_metric_name(v)
        if not cleaned or cleaned[0].isdigit():
            raise ValueError("METRIC_PREFIX must start with a letter")
        return cleaned

    @validator('log_level', pre=True)
    def normalise_log_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @validator('log_file')
    def ensure_log_directory(cls, v):
        """Ensure parent directory exists for the log file"""
        if isinstance(v, Path):
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

