"""
Configuration module for Quote Digest.

Loads environment variables from .env file and exposes them as typed configuration values.
Uses python-dotenv for loading and provides safe defaults where appropriate.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
# The .env file should be in the root directory (parent of quotedigest/)
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Application Environment
# =============================================================================

# Application environment: "development", "staging", or "production"
APP_ENV: str = os.getenv("APP_ENV", "development")

# Enable debug mode for verbose logging
DEBUG: bool = _env_bool("DEBUG")

# Root log level (overridden to DEBUG when DEBUG is true)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# HTTP port for the web surface
PORT: int = int(os.getenv("PORT", "1339"))


# =============================================================================
# Job Queue Configuration
# =============================================================================

# Use the Redis-backed durable queue instead of the in-process fallback
DURABLE_QUEUE_ENABLED: bool = _env_bool("DURABLE_QUEUE_ENABLED")

REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))

# Key prefix for the queue's Redis lists and job hashes
QUEUE_NAME: str = os.getenv("QUEUE_NAME", "digest")


# =============================================================================
# Digest Configuration
# =============================================================================

# Weekly trigger, standard 5-field crontab. Default: Monday 09:00
DIGEST_CRON: str = os.getenv("DIGEST_CRON", "0 9 * * 1")

# Number of quotes read per selector scan batch
SCAN_BATCH_SIZE: int = int(os.getenv("SCAN_BATCH_SIZE", "20"))


# =============================================================================
# Airtable Configuration
# =============================================================================

# Required for production; empty string as default for development
AIRTABLE_API_KEY: str = os.getenv("AIRTABLE_API_KEY", "")
AIRTABLE_BASE_ID: str = os.getenv("AIRTABLE_BASE_ID", "")
AIRTABLE_QUOTES_TABLE: str = os.getenv("AIRTABLE_QUOTES_TABLE", "Quotes")
AIRTABLE_SUBSCRIBERS_TABLE: str = os.getenv("AIRTABLE_SUBSCRIBERS_TABLE", "Subscribers")

# HTTP request timeout in seconds
REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))


# =============================================================================
# Mail Configuration
# =============================================================================

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", "true")
MAIL_FROM: str = os.getenv("MAIL_FROM", "Quote Digest <digest@localhost>")


# =============================================================================
# Settings object
# =============================================================================

@dataclass
class Settings:
    """
    Explicit settings handed to the engine at startup.

    Module-level constants above are the defaults; tests build their own
    Settings instead of patching the environment.
    """
    app_env: str = APP_ENV
    debug: bool = DEBUG
    log_level: str = LOG_LEVEL
    port: int = PORT
    durable_queue_enabled: bool = DURABLE_QUEUE_ENABLED
    redis_host: str = REDIS_HOST
    redis_port: int = REDIS_PORT
    redis_password: str = REDIS_PASSWORD
    redis_db: int = REDIS_DB
    queue_name: str = QUEUE_NAME
    digest_cron: str = DIGEST_CRON
    scan_batch_size: int = SCAN_BATCH_SIZE
    airtable_api_key: str = AIRTABLE_API_KEY
    airtable_base_id: str = AIRTABLE_BASE_ID
    airtable_quotes_table: str = AIRTABLE_QUOTES_TABLE
    airtable_subscribers_table: str = AIRTABLE_SUBSCRIBERS_TABLE
    request_timeout: int = REQUEST_TIMEOUT
    smtp_host: str = SMTP_HOST
    smtp_port: int = SMTP_PORT
    smtp_username: str = SMTP_USERNAME
    smtp_password: str = SMTP_PASSWORD
    smtp_use_tls: bool = SMTP_USE_TLS
    mail_from: str = MAIL_FROM

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the loaded module constants."""
        return cls()


# =============================================================================
# Helper Functions
# =============================================================================

def validate_config(settings: Settings = None) -> list[str]:
    """
    Validate configuration.

    Args:
        settings: Settings to check. Defaults to the environment.

    Returns:
        List of missing or invalid configuration keys (empty if all valid).
    """
    s = settings or Settings.from_env()
    errors = []

    if s.app_env == "production":
        if not s.airtable_api_key:
            errors.append("AIRTABLE_API_KEY is required in production")
        if not s.airtable_base_id:
            errors.append("AIRTABLE_BASE_ID is required in production")
        if not s.smtp_host:
            errors.append("SMTP_HOST is required in production")

    if s.scan_batch_size < 1:
        errors.append("SCAN_BATCH_SIZE must be at least 1")

    if len(s.digest_cron.split()) != 5:
        errors.append(f"DIGEST_CRON must have 5 fields, got {s.digest_cron!r}")

    if not (0 < s.port < 65536):
        errors.append("PORT must be between 1 and 65535")

    if s.durable_queue_enabled and not s.redis_host:
        errors.append("REDIS_HOST is required when DURABLE_QUEUE_ENABLED is true")

    if s.request_timeout < 1:
        errors.append("REQUEST_TIMEOUT must be at least 1 second")

    return errors


def print_config_summary(settings: Settings = None) -> None:
    """Print a summary of current configuration (safe for logs, no secrets)."""
    s = settings or Settings.from_env()
    print(f"  APP_ENV: {s.app_env}")
    print(f"  DEBUG: {s.debug}")
    print(f"  PORT: {s.port}")
    print(f"  DURABLE_QUEUE_ENABLED: {s.durable_queue_enabled}")
    if s.durable_queue_enabled:
        print(f"  REDIS: {s.redis_host}:{s.redis_port}/{s.redis_db}")
        print(f"  REDIS_PASSWORD: {'***' if s.redis_password else '(not set)'}")
    print(f"  QUEUE_NAME: {s.queue_name}")
    print(f"  DIGEST_CRON: {s.digest_cron}")
    print(f"  SCAN_BATCH_SIZE: {s.scan_batch_size}")
    print(f"  AIRTABLE_API_KEY: {'***' if s.airtable_api_key else '(not set)'}")
    print(f"  AIRTABLE_BASE_ID: {'***' if s.airtable_base_id else '(not set)'}")
    print(f"  SMTP_HOST: {s.smtp_host or '(not set)'}")
    print(f"  MAIL_FROM: {s.mail_from}")
