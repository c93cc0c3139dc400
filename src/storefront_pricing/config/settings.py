"""
Centralized settings and path configuration for the pricing engine.

Values come from STOREFRONT_PRICING_* environment variables (or a .env
file), falling back to the defaults below.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_project_root() -> Path:
    """Get the project root directory (where sample_data/ lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'sample_data').is_dir() or (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    """Application settings with sensible defaults."""

    project_root: Path = Field(default_factory=get_project_root)
    data_dir: Optional[Path] = None  # default: project_root / sample_data

    default_currency: str = "USD"
    points_to_money_ratio: float = 0.01
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_PRICING_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("default_currency", "log_level")
    @classmethod
    def validate_upper(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("points_to_money_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("points_to_money_ratio must be positive")
        return v

    @model_validator(mode="after")
    def default_data_dir(self) -> 'Settings':
        if self.data_dir is None:
            self.data_dir = self.project_root / 'sample_data'
        return self

    # Catalog files
    @property
    def products_csv(self) -> Path:
        return self.data_dir / 'products.csv'

    @property
    def variants_csv(self) -> Path:
        return self.data_dir / 'variants.csv'

    # Pricing layer files
    @property
    def tier_prices_csv(self) -> Path:
        return self.data_dir / 'tier_prices.csv'

    @property
    def price_lists_json(self) -> Path:
        return self.data_dir / 'price_lists.json'

    @property
    def customer_prices_csv(self) -> Path:
        return self.data_dir / 'customer_prices.csv'

    @property
    def pricing_rules_json(self) -> Path:
        return self.data_dir / 'pricing_rules.json'

    # Enrichment files
    @property
    def memberships_json(self) -> Path:
        return self.data_dir / 'memberships.json'

    @property
    def loyalty_points_csv(self) -> Path:
        return self.data_dir / 'loyalty_points.csv'

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the environment, optionally pinning the project root."""
        if project_root is None:
            return cls()
        return cls(project_root=project_root)


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
