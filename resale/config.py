import logging
import warnings

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"  # development | test | production
    log_level: str = "INFO"

    # Document store: "sql" persists to database_url, "memory" is process-local (dev/tests)
    document_store: str = "sql"
    database_url: str = "sqlite+aiosqlite:///./data/resale.db"

    # Ticket artifacts: local directory unless Azure Blob is configured
    artifact_store_path: str = "./data/artifacts"
    azure_storage_connection_string: str = ""
    azure_storage_container: str = "ticket-artifacts"
    storage_notification_token: str = "dev-storage-token-change-in-production"

    # Auth
    jwt_secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"

    # Stripe
    stripe_secret_key: str = ""
    stripe_payments_webhook_secret: str = ""
    stripe_accounts_webhook_secret: str = ""
    stripe_webhook_tolerance_seconds: int = 300
    currency: str = "gbp"
    connected_account_country: str = "GB"  # default for seller signups that omit a country

    # Ticket holds: an unpaid hold older than this can be taken over by another buyer
    ticket_hold_ttl_seconds: int = 1800

    # Fees (all amounts in minor currency units)
    fee_policy: str = "percentage"  # flat | percentage
    flat_fee_cents: int = 100
    percentage_fee_rate: float = 0.014
    fixed_fee_cents: int = 20

    # Email delivery
    email_api_key: str = ""
    email_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    email_sender: str = "tickets@example.com"
    email_timeout_seconds: float = 10.0

    # Banking field encryption (64 hex chars = 32-byte AES-256 key)
    field_encryption_key: str = "00" * 32

    # Seller onboarding redirects
    onboarding_refresh_url: str = "http://localhost:5173/onboarding/refresh"
    onboarding_return_url: str = "http://localhost:5173/onboarding/complete"

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

# Insecure defaults warn outside production and fail startup in production
_logger = logging.getLogger("resale.config")
_INSECURE_SECRETS = {
    "dev-secret-change-in-production",
    "dev-storage-token-change-in-production",
    "change-me-to-a-random-string",
    "00" * 32,
}


def validate_security_posture(cfg: Settings) -> None:
    is_prod = cfg.environment.lower() in {"production", "prod"}

    if cfg.jwt_secret_key in _INSECURE_SECRETS:
        if is_prod:
            raise RuntimeError(
                "FATAL: JWT_SECRET_KEY is set to an insecure default. "
                "Set a strong random secret via the JWT_SECRET_KEY environment variable before deploying to production."
            )
        warnings.warn(
            "JWT_SECRET_KEY is set to the default insecure value. "
            "Set a strong random secret via the JWT_SECRET_KEY environment variable for production.",
            stacklevel=1,
        )

    if cfg.field_encryption_key in _INSECURE_SECRETS:
        if is_prod:
            raise RuntimeError(
                "FATAL: FIELD_ENCRYPTION_KEY must be set to a strong random value in production."
            )
        _logger.warning(
            "FIELD_ENCRYPTION_KEY is set to the default all-zero key. "
            "Banking fields written in this mode are not protected."
        )

    if cfg.fee_policy not in {"flat", "percentage"}:
        raise RuntimeError(
            f"FATAL: FEE_POLICY must be 'flat' or 'percentage', got {cfg.fee_policy!r}."
        )

    # Webhook signature checks are never skipped; a missing secret rejects every delivery.
    for name in ("stripe_payments_webhook_secret", "stripe_accounts_webhook_secret"):
        if not getattr(cfg, name):
            if is_prod:
                raise RuntimeError(f"FATAL: {name.upper()} must be set in production.")
            _logger.warning(
                "%s is not set; webhook deliveries to this endpoint will be rejected.",
                name.upper(),
            )

    if is_prod:
        if cfg.storage_notification_token in _INSECURE_SECRETS:
            raise RuntimeError(
                "FATAL: STORAGE_NOTIFICATION_TOKEN must be set to a strong random value in production."
            )
        if cfg.cors_origins == "*":
            raise RuntimeError(
                "FATAL: CORS_ORIGINS cannot be '*' in production. "
                "Set explicit trusted origins via the CORS_ORIGINS environment variable."
            )


validate_security_posture(settings)
