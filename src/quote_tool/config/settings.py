"""
Centralized settings and path configuration for the quote tool.

Values come from, highest priority first: <project_root>/quote_config.json,
QUOTE_TOOL_* environment variables, then the defaults below.
Every value is type-checked by pydantic, so "false" in the JSON file is False
and "abc" for a percentage stops startup.
"""
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, TypeAdapter, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILENAME = 'quote_config.json'

_OVERRIDES_ADAPTER = TypeAdapter(dict[str, Any])


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / CONFIG_FILENAME).exists() or (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def get_package_data_dir() -> Path:
    return Path(__file__).resolve().parent.parent / 'data'


class Settings(BaseSettings):
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path = Field(default_factory=get_project_root)

    # Input files (None = the packaged price list; relative = under project_root)
    rate_table: Optional[Path] = None

    # Rate table flavour
    rate_table_tax_inclusive: bool = False

    # Pricing policy (see PricingConfig)
    exchange_rate: Decimal = Decimal("61.87")
    min_markup_percent: Decimal = Decimal("0")
    target_markup_percent: Decimal = Decimal("15")
    fee_percent: Decimal = Decimal("2.9")
    fee_waivable: bool = True
    baked_in_tax_percent: Decimal = Decimal("13")
    tax_order: Literal["after_markup", "before_markup"] = "after_markup"
    fee_base: Literal["post_discount", "pre_discount"] = "post_discount"
    billing_period: Literal["monthly", "annual"] = "monthly"
    base_currency: str = "CAD"
    display_currency: str = "INR"

    # Form defaults for new cart lines
    default_quantity: int = 1
    default_markup_percent: Decimal = Decimal("15")
    default_tax_percent: Decimal = Decimal("13")

    model_config = SettingsConfigDict(
        env_prefix="QUOTE_TOOL_",
        case_sensitive=False,
        extra="forbid",
    )

    @model_validator(mode="after")
    def _resolve_rate_table(self) -> 'Settings':
        if self.rate_table is None:
            self.rate_table = get_package_data_dir() / 'rate_table.csv'
        elif not self.rate_table.is_absolute():
            self.rate_table = self.project_root / self.rate_table
        return self

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """
        Load settings from the project structure.

        Raises ConfigurationError for an unreadable quote_config.json, an
        unknown key, or a value of the wrong type.
        """
        root = Path(project_root) if project_root else get_project_root()
        overrides = {}

        config_path = root / CONFIG_FILENAME
        if config_path.exists():
            overrides = _read_overrides(config_path)
            logger.info("Loaded settings overrides from %s", config_path)
        return _build(cls, {'project_root': root, **overrides})

    def with_overrides(self, overrides: dict) -> 'Settings':
        """A new, re-validated Settings with some values replaced."""
        values = self.model_dump()
        values.update(overrides)
        return _build(type(self), values)

    def pricing_config(self) -> "PricingConfig":
        """Build the validated, immutable pricing configuration."""
        from ..engine.models import PricingConfig

        return PricingConfig(
            exchange_rate=self.exchange_rate,
            min_markup_percent=self.min_markup_percent,
            target_markup_percent=self.target_markup_percent,
            fee_percent=self.fee_percent,
            fee_waivable=self.fee_waivable,
            baked_in_tax_percent=self.baked_in_tax_percent,
            tax_order=self.tax_order,
            fee_base=self.fee_base,
            billing_period=self.billing_period,
            base_currency=self.base_currency,
            display_currency=self.display_currency,
        )


def _build(settings_cls, values: dict) -> Settings:
    from ..engine.errors import ConfigurationError

    try:
        return settings_cls(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from None


def _read_overrides(path: Path) -> dict:
    from ..engine.errors import ConfigurationError

    try:
        return _OVERRIDES_ADAPTER.validate_json(path.read_bytes())
    except ValidationError as e:
        raise ConfigurationError(f"{path.name} must contain a JSON object: {e}") from None


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
