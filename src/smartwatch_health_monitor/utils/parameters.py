"""
Configuration and parameter loading using Pydantic.

This module provides centralized configuration management for the entire application.
All parameters are loaded from YAML and validated using Pydantic models.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from smartwatch_health_monitor.utils.exceptions import ConfigurationError

FIT_READ_SCOPES = [
    "https://www.googleapis.com/auth/fitness.heart_rate.read",
    "https://www.googleapis.com/auth/fitness.activity.read",
    "https://www.googleapis.com/auth/fitness.oxygen_saturation.read",
    "https://www.googleapis.com/auth/fitness.body_temperature.read",
]


class OAuth2Config(BaseModel):
    """OAuth2 authentication configuration."""

    credentials_path: str
    token_path: str
    scopes: list[str] = Field(default_factory=lambda: list(FIT_READ_SCOPES))


class ServiceAccountConfig(BaseModel):
    """Service account authentication configuration."""

    credentials_path: str
    scopes: list[str] = Field(default_factory=lambda: list(FIT_READ_SCOPES))


class FitConfig(BaseModel):
    """Google Fit configuration."""

    enabled: bool = True
    auth_method: str = Field("oauth2", pattern="^(oauth2|service_account)$")
    oauth2: OAuth2Config | None = None
    service_account: ServiceAccountConfig | None = None
    lookback_hours: int = Field(24, gt=0)
    data_sources: list[str] = Field(
        default_factory=lambda: [
            "derived:com.google.heart_rate.bpm:com.google.android.gms:merge_heart_rate_bpm",
            "derived:com.google.step_count.delta:com.google.android.gms:estimated_steps",
        ]
    )
    data_type_fields: dict[str, str] = Field(
        default_factory=lambda: {
            "com.google.heart_rate.bpm": "heartRate",
            "com.google.step_count.delta": "steps",
            "com.google.oxygen_saturation": "oxygen_saturation",
            "com.google.body.temperature": "body_temperature",
        }
    )


class CSVConfig(BaseModel):
    """CSV parsing configuration."""

    encodings: list[str] = Field(default_factory=lambda: ["utf-8"])
    column_mappings: dict[str, str] = Field(default_factory=dict)


class ProcessingConfig(BaseModel):
    """Data processing configuration."""

    timezone: str = "UTC"
    duplicate_policy: str = Field(
        "keep_all", pattern="^(keep_all|prefer_primary|prefer_secondary)$"
    )


class FirestoreConfig(BaseModel):
    """Cloud Firestore configuration."""

    collection: str = "smartwatch_data"
    batch_size: int = Field(500, gt=0, le=500)


class StorageConfig(BaseModel):
    """Cloud Storage configuration."""

    signed_url_minutes: int = Field(60, gt=0)
    remote_prefix: str = "uploads"


class EnvironmentConfig(BaseModel):
    """A named Firebase project environment."""

    name: str
    config_file: str
    credentials_path: str | None = None


class EnvironmentsConfig(BaseModel):
    """Firebase environments configuration."""

    default: str = "DEFAULT"
    items: list[EnvironmentConfig]


class OutputFilesConfig(BaseModel):
    """Output file names configuration."""

    merged_csv: str = "readings_merged.csv"
    merged_parquet: str = "readings_merged.parquet"
    ingestion_log: str = "ingestion_log.jsonl"
    snapshot_store: str = "snapshot_store.json"


class ParquetConfig(BaseModel):
    """Parquet output configuration."""

    compression: str = "snappy"
    engine: str = "pyarrow"


class OutputConfig(BaseModel):
    """Output configuration."""

    dir: str = "output"
    files: OutputFilesConfig = Field(default_factory=OutputFilesConfig)
    formats: list[str] = Field(default_factory=lambda: ["csv"])
    parquet: ParquetConfig = Field(default_factory=ParquetConfig)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    console: bool = True
    library_levels: dict[str, str] = Field(
        default_factory=lambda: {
            "googleapiclient.discovery_cache": "ERROR",
            "google.auth": "WARNING",
            "urllib3": "WARNING",
        }
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    csv: CSVConfig = Field(default_factory=CSVConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    fit: FitConfig = Field(default_factory=FitConfig)
    firestore: FirestoreConfig = Field(default_factory=FirestoreConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    environments: EnvironmentsConfig
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SHM_", env_nested_delimiter="__", case_sensitive=False
    )


class ParameterLoader:
    """
    Centralized parameter loader for the application.

    Loads and validates configuration from YAML files using Pydantic models.
    Provides type-safe access to all configuration parameters.
    """

    def __init__(self, config_path: str = "config/config.yaml") -> None:
        """
        Initialize parameter loader.

        Args:
            config_path: Path to the YAML configuration file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        self.config_path = Path(config_path)
        self.config: AppConfig
        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}

            self.config = AppConfig(**config_dict)

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def get_csv_config(self) -> CSVConfig:
        """Get CSV parsing configuration."""
        return self.config.csv

    def get_processing_config(self) -> ProcessingConfig:
        """Get data processing configuration."""
        return self.config.processing

    def get_fit_config(self) -> FitConfig:
        """Get Google Fit configuration."""
        return self.config.fit

    def get_firestore_config(self) -> FirestoreConfig:
        """Get Firestore configuration."""
        return self.config.firestore

    def get_storage_config(self) -> StorageConfig:
        """Get Cloud Storage configuration."""
        return self.config.storage

    def get_environments_config(self) -> EnvironmentsConfig:
        """Get Firebase environments configuration."""
        return self.config.environments

    def get_output_config(self) -> OutputConfig:
        """Get output configuration."""
        return self.config.output

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        return self.config.logging
