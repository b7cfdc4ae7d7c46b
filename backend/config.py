"""
Centralized configuration for the email MX verifier.
All environment variables are read and validated here.
"""

import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    """Application configuration with validation."""

    # Application version (single source of truth)
    VERSION: str = "1.0.0"

    # Testing mode detection (disables background threads)
    TESTING: bool = _env_bool("TESTING", "")

    # Server
    PORT: int = int(os.getenv("PORT", "5050"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    DEBUG: bool = os.getenv("FLASK_ENV", "development") == "development"

    # Validator
    VALIDATOR_MODE: str = os.getenv("VALIDATOR_MODE", "real")  # 'real' or 'mock'
    CHECK_DISPOSABLE_DEFAULT: bool = _env_bool("CHECK_DISPOSABLE_DEFAULT", "true")

    # DNS
    DNS_TIMEOUT_MS: int = int(os.getenv("DNS_TIMEOUT_MS", "5000"))
    DNS_NAMESERVERS: str = os.getenv("DNS_NAMESERVERS", "")  # Comma-separated, empty = system
    RESOLVER_MAX_WORKERS: int = int(os.getenv("RESOLVER_MAX_WORKERS", "8"))

    # MX cache
    MX_CACHE_ENABLED: bool = _env_bool("MX_CACHE_ENABLED", "true")
    MX_CACHE_TTL_SECONDS: int = int(os.getenv("MX_CACHE_TTL_SECONDS", "300"))
    MX_CACHE_MAX_SIZE: int = int(os.getenv("MX_CACHE_MAX_SIZE", "1000"))
    MX_CACHE_SWEEP_INTERVAL_SECONDS: int = int(os.getenv("MX_CACHE_SWEEP_INTERVAL_SECONDS", "60"))

    # Authentication for cache management endpoints (empty = open, dev only)
    APP_API_KEY: str = os.getenv("APP_API_KEY", "")

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")  # Comma-separated, empty = same-origin only

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def get_cors_origins(cls) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        if not cls.CORS_ORIGINS:
            return []  # No wildcard, same-origin only
        return [origin.strip() for origin in cls.CORS_ORIGINS.split(",") if origin.strip()]

    @classmethod
    def get_nameservers(cls) -> list[str]:
        """Parse DNS_NAMESERVERS into a list."""
        return [ns.strip() for ns in cls.DNS_NAMESERVERS.split(",") if ns.strip()]

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        if cls.VALIDATOR_MODE not in ("real", "mock"):
            raise ValueError(f"VALIDATOR_MODE must be 'real' or 'mock', got '{cls.VALIDATOR_MODE}'")

        if cls.LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be valid logging level, got '{cls.LOG_LEVEL}'")

        if cls.DNS_TIMEOUT_MS < 1 or cls.DNS_TIMEOUT_MS > 60000:
            raise ValueError(f"DNS_TIMEOUT_MS must be between 1 and 60000, got {cls.DNS_TIMEOUT_MS}")

        if cls.RESOLVER_MAX_WORKERS < 1 or cls.RESOLVER_MAX_WORKERS > 64:
            raise ValueError(
                f"RESOLVER_MAX_WORKERS must be between 1 and 64, got {cls.RESOLVER_MAX_WORKERS}"
            )

        if cls.MX_CACHE_TTL_SECONDS < 1 or cls.MX_CACHE_TTL_SECONDS > 86400:
            raise ValueError(
                f"MX_CACHE_TTL_SECONDS must be between 1 and 86400, got {cls.MX_CACHE_TTL_SECONDS}"
            )

        if cls.MX_CACHE_MAX_SIZE < 1 or cls.MX_CACHE_MAX_SIZE > 1_000_000:
            raise ValueError(
                f"MX_CACHE_MAX_SIZE must be between 1 and 1000000, got {cls.MX_CACHE_MAX_SIZE}"
            )

        if cls.MX_CACHE_SWEEP_INTERVAL_SECONDS < 1 or cls.MX_CACHE_SWEEP_INTERVAL_SECONDS > 3600:
            raise ValueError(
                f"MX_CACHE_SWEEP_INTERVAL_SECONDS must be between 1 and 3600, "
                f"got {cls.MX_CACHE_SWEEP_INTERVAL_SECONDS}"
            )


# Validate on import
Config.validate()
