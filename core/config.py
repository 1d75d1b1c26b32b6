import logging
import secrets
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"

    # Admin token for /admin endpoints
    ADMIN_TOKEN: str = ""

    # Provider credentials. The static dataset uses its own key when set,
    # otherwise the live-feed key.
    API_KEY: str = ""
    GTFS_API_KEY: str = ""

    # Provider endpoints
    GTFS_STATIC_URL: str = "https://opendata.samtrafiken.se/gtfs/xt/xt.zip"
    GTFS_RT_VEHICLE_POSITIONS_URL: str = "https://opendata.samtrafiken.se/gtfs-rt/xt/VehiclePositions.pb"

    # Static dataset cache
    GTFS_DATA_DIR: str = "data"
    GTFS_REFRESH_INTERVAL_DAYS: int = 7
    GTFS_MONTHLY_LIMIT: int = 50  # Advisory only, never enforced
    GTFS_SYNTHETIC_FALLBACK: bool = True
    GTFS_DOWNLOAD_TIMEOUT: float = 120.0
    GTFS_RT_TIMEOUT: float = 30.0

    # Optional JSON file with "direct_overrides" and "company_segments" tables
    VEHICLE_IDENTITY_TABLES_PATH: str = ""

    # Frontend
    FRONTEND_DIR: str = "frontend"

    # Rate limiting backend (memory:// or redis://...)
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    @property
    def static_api_key(self) -> str:
        return self.GTFS_API_KEY or self.API_KEY

    @property
    def data_dir(self) -> Path:
        return Path(self.GTFS_DATA_DIR)

    @property
    def archive_path(self) -> Path:
        return self.data_dir / "gtfs-data.zip"

    @property
    def extract_dir(self) -> Path:
        return self.data_dir / "gtfs-data"

    @property
    def metadata_path(self) -> Path:
        return self.data_dir / "gtfs-metadata.json"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def validate_production_settings(self) -> None:
        """Validate critical settings for production environment.

        Call this during application startup.
        Raises ValueError if production settings are invalid.
        """
        errors = []

        if self.is_production:
            # Check ADMIN_TOKEN
            if not self.ADMIN_TOKEN or len(self.ADMIN_TOKEN) < 32:
                errors.append(
                    "ADMIN_TOKEN must be set to a secure value (min 32 chars) in production"
                )

            # Check DEBUG is disabled
            if self.DEBUG:
                errors.append("DEBUG must be False in production")

        if errors:
            raise ValueError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )

    def validate_development_settings(self) -> None:
        """Set sensible defaults for development if not configured."""
        # Generate admin token for development if not set
        if not self.ADMIN_TOKEN:
            self.ADMIN_TOKEN = secrets.token_urlsafe(32)
            logger.warning(f"Using auto-generated ADMIN_TOKEN for development: {self.ADMIN_TOKEN}")

        if not self.static_api_key:
            logger.warning("No GTFS_API_KEY or API_KEY configured - static dataset will fall back to synthetic data")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create settings instance
settings = Settings()

# Validate based on environment
if settings.is_production:
    settings.validate_production_settings()
else:
    settings.validate_development_settings()
