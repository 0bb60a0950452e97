"""
Central configuration module for the Job Board service
Reads and validates environment variables with strict checks for production
"""
import os
import sys
from typing import Optional, List

# Load environment variables from .env file if it exists (dev only)
try:
    from dotenv import load_dotenv
    if os.getenv("ENV", "dev").lower() == "dev":
        load_dotenv()
except ImportError:
    pass


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Central configuration class with environment variable validation"""

    def __init__(self):
        """Read environment variables and validate them"""
        # Environment
        self.ENV: str = os.getenv("ENV", "dev").lower()

        # Required for all environments
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./job_board.db")

        # Database pool (PostgreSQL only)
        self.DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
        self.DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
        self.DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "900"))
        self.DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))

        self.PORT: int = int(os.getenv("PORT", "8000"))
        self.API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")
        self.CORS_ORIGINS: List[str] = []

        # Auth
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120"))

        # Payment provider selection
        self.PAYMENT_PROVIDER: str = os.getenv("PAYMENT_PROVIDER", "stripe").lower()
        self.CURRENCY: str = os.getenv("CURRENCY", "usd").lower()

        # Payment providers - Stripe
        self.STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
        self.STRIPE_PUBLIC_KEY: Optional[str] = os.getenv("STRIPE_PUBLIC_KEY")
        self.STRIPE_TEST_SECRET_KEY: Optional[str] = os.getenv("STRIPE_TEST_SECRET_KEY")
        self.STRIPE_TEST_PUBLIC_KEY: Optional[str] = os.getenv("STRIPE_TEST_PUBLIC_KEY")

        # Payment providers - Paystack
        self.PAYSTACK_SECRET_KEY: Optional[str] = os.getenv("PAYSTACK_SECRET_KEY")
        self.PAYSTACK_PUBLIC_KEY: Optional[str] = os.getenv("PAYSTACK_PUBLIC_KEY")
        self.PAYSTACK_TEST_SECRET_KEY: Optional[str] = os.getenv("PAYSTACK_TEST_SECRET_KEY")
        self.PAYSTACK_TEST_PUBLIC_KEY: Optional[str] = os.getenv("PAYSTACK_TEST_PUBLIC_KEY")

        # Payment orchestration
        self.PAYMENT_TIMEOUT_SECONDS: float = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10"))
        self.PAYMENT_MAX_ATTEMPTS: int = int(os.getenv("PAYMENT_MAX_ATTEMPTS", "3"))
        self.PAYMENT_RETRY_BACKOFF_SECONDS: float = float(os.getenv("PAYMENT_RETRY_BACKOFF_SECONDS", "0.5"))
        self.PENDING_TRANSACTION_TTL_MINUTES: int = int(os.getenv("PENDING_TRANSACTION_TTL_MINUTES", "60"))
        self.PENDING_CLAIM_GRACE_SECONDS: int = int(os.getenv("PENDING_CLAIM_GRACE_SECONDS", "120"))

        # Listings
        self.FEATURED_SLOTS: int = int(os.getenv("FEATURED_SLOTS", "4"))

        # Background jobs
        self.ENABLE_SCHEDULER: bool = _env_bool("ENABLE_SCHEDULER", "false")
        self.EXPIRATION_SWEEP_MINUTES: int = int(os.getenv("EXPIRATION_SWEEP_MINUTES", "15"))

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self._load_cors_origins()
        self._validate()

    def _load_cors_origins(self):
        """Load CORS origins from environment variable"""
        default_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_env = os.getenv("CORS_ORIGINS", "")
        if cors_env:
            env_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
            self.CORS_ORIGINS = default_origins + env_origins
        else:
            self.CORS_ORIGINS = default_origins

    def _validate(self):
        """Validate required configuration based on environment"""
        errors = []

        if self.ENV not in ["dev", "test", "staging", "prod"]:
            errors.append(f"Invalid ENV value: {self.ENV}. Must be 'dev', 'test', 'staging', or 'prod'")

        if not self.SECRET_KEY:
            errors.append("SECRET_KEY is required but not set")
        elif len(self.SECRET_KEY) < 32:
            errors.append(f"SECRET_KEY must be at least 32 characters (current: {len(self.SECRET_KEY)})")

        # SQLite is accepted for local development and tests only
        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required but not set")
        elif self.ENV in ["staging", "prod"] and not self.DATABASE_URL.startswith("postgresql"):
            errors.append(f"DATABASE_URL must be a PostgreSQL connection string in {self.ENV} (got: {self.DATABASE_URL[:30]}...)")

        if self.PAYMENT_PROVIDER not in ["stripe", "paystack"]:
            errors.append(f"Invalid PAYMENT_PROVIDER: {self.PAYMENT_PROVIDER}. Must be 'stripe' or 'paystack'")

        if self.PAYMENT_MAX_ATTEMPTS < 1:
            errors.append("PAYMENT_MAX_ATTEMPTS must be at least 1")

        if self.FEATURED_SLOTS < 1:
            errors.append("FEATURED_SLOTS must be at least 1")

        # Live payment keys required in prod, test keys in staging
        if self.ENV == "prod":
            if self.PAYMENT_PROVIDER == "stripe" and not self.STRIPE_SECRET_KEY:
                errors.append("STRIPE_SECRET_KEY is required when PAYMENT_PROVIDER=stripe in prod")
            if self.PAYMENT_PROVIDER == "paystack" and not self.PAYSTACK_SECRET_KEY:
                errors.append("PAYSTACK_SECRET_KEY is required when PAYMENT_PROVIDER=paystack in prod")
        elif self.ENV == "staging":
            if self.PAYMENT_PROVIDER == "stripe" and not self.STRIPE_TEST_SECRET_KEY:
                errors.append("STRIPE_TEST_SECRET_KEY is required when PAYMENT_PROVIDER=stripe in staging")
            if self.PAYMENT_PROVIDER == "paystack" and not self.PAYSTACK_TEST_SECRET_KEY:
                errors.append("PAYSTACK_TEST_SECRET_KEY is required when PAYMENT_PROVIDER=paystack in staging")

        if self.ENV in ["staging", "prod"]:
            if not self.API_BASE_URL.startswith("https://"):
                errors.append("API_BASE_URL must use HTTPS in staging/production")

        # Fail fast in staging/prod
        if errors and self.ENV in ["staging", "prod"]:
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION VALIDATION FAILED", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            sys.exit(1)

        # Warn in dev/test
        if errors:
            print("=" * 60, file=sys.stderr)
            print(f"CONFIGURATION WARNINGS ({self.ENV} mode - continuing)", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode"""
        return self.ENV == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode"""
        return self.ENV == "prod"

    @property
    def is_staging(self) -> bool:
        """Check if running in staging mode"""
        return self.ENV == "staging"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Create global config instance
config = Config()
