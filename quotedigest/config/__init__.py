"""
Configuration module.

Handles environment variables, connection parameters, and application settings.
"""

from quotedigest.config.config import (
    APP_ENV,
    DEBUG,
    LOG_LEVEL,
    PORT,
    DURABLE_QUEUE_ENABLED,
    REDIS_HOST,
    REDIS_PORT,
    REDIS_PASSWORD,
    REDIS_DB,
    QUEUE_NAME,
    DIGEST_CRON,
    SCAN_BATCH_SIZE,
    AIRTABLE_API_KEY,
    AIRTABLE_BASE_ID,
    AIRTABLE_QUOTES_TABLE,
    AIRTABLE_SUBSCRIBERS_TABLE,
    REQUEST_TIMEOUT,
    SMTP_HOST,
    SMTP_PORT,
    SMTP_USERNAME,
    SMTP_PASSWORD,
    SMTP_USE_TLS,
    MAIL_FROM,
    Settings,
    validate_config,
    print_config_summary,
)

__all__ = [
    "APP_ENV",
    "DEBUG",
    "LOG_LEVEL",
    "PORT",
    "DURABLE_QUEUE_ENABLED",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_PASSWORD",
    "REDIS_DB",
    "QUEUE_NAME",
    "DIGEST_CRON",
    "SCAN_BATCH_SIZE",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_QUOTES_TABLE",
    "AIRTABLE_SUBSCRIBERS_TABLE",
    "REQUEST_TIMEOUT",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_USE_TLS",
    "MAIL_FROM",
    "Settings",
    "validate_config",
    "print_config_summary",
]
