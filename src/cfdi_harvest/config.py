"""Configuration management using pydantic-settings."""

import tomllib
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import ScanLimits, TaxBounds

DEFAULT_OUTPUT_DIR = "."
DEFAULT_MAX_FILE_MB = 50
CONFIG_PATH = Path("~/.config/cfdi-harvest/config.toml").expanduser()


class ExportFormat(str, Enum):
    """Available export formats."""

    XLSX = "xlsx"
    YAML = "yaml"


class TaxConfig(BaseSettings):
    """Tax codes, plausible ranges and ratio bands.

    Ratios are fractions of the subtotal.
    """

    vat_codes: list[str] = ["002", "IVA"]
    lodging_codes: list[str] = ["003"]
    lodging_abbreviation: str = "ISH"
    vat_min: Decimal = Decimal("100")
    vat_max: Decimal = Decimal("10000")
    lodging_min: Decimal = Decimal("10")
    lodging_max: Decimal = Decimal("1000")
    lodging_midpoint: Decimal = Decimal("200")
    lodging_preferred_min: Decimal = Decimal("50")
    lodging_preferred_max: Decimal = Decimal("400")
    ratio_min: Decimal = Decimal("0.01")
    ratio_max: Decimal = Decimal("0.10")
    research_min: Decimal = Decimal("0.02")
    research_max: Decimal = Decimal("0.04")
    research_target: Decimal = Decimal("0.03")
    research_min_score: Decimal = Decimal("70")

    @model_validator(mode="after")
    def check_ranges(self) -> Self:
        if self.vat_min > self.vat_max:
            raise ValueError("vat_min must not exceed vat_max")
        if self.lodging_min > self.lodging_max:
            raise ValueError("lodging_min must not exceed lodging_max")
        if self.ratio_min > self.ratio_max or self.research_min > self.research_max:
            raise ValueError("ratio bands must be ordered min <= max")
        return self

    def to_bounds(self) -> TaxBounds:
        return TaxBounds(
            vat_codes=tuple(self.vat_codes),
            lodging_codes=tuple(self.lodging_codes),
            lodging_abbreviation=self.lodging_abbreviation,
            vat_min=self.vat_min,
            vat_max=self.vat_max,
            lodging_min=self.lodging_min,
            lodging_max=self.lodging_max,
            lodging_midpoint=self.lodging_midpoint,
            lodging_preferred_min=self.lodging_preferred_min,
            lodging_preferred_max=self.lodging_preferred_max,
            ratio_min=self.ratio_min,
            ratio_max=self.ratio_max,
            research_min=self.research_min,
            research_max=self.research_max,
            research_target=self.research_target,
            research_min_score=self.research_min_score,
        )


class LimitsConfig(BaseSettings):
    max_file_mb: int = DEFAULT_MAX_FILE_MB
    max_elements: int = 20_000
    max_attributes: int = 200

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_mb * 1024 * 1024

    def to_scan_limits(self) -> ScanLimits:
        return ScanLimits(
            max_elements=self.max_elements, max_attributes=self.max_attributes
        )


class ExportConfig(BaseSettings):
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    format: ExportFormat = ExportFormat.XLSX

    @field_validator("output_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CFDI_HARVEST_")

    tax: TaxConfig = TaxConfig()
    limits: LimitsConfig = LimitsConfig()
    export: ExportConfig = ExportConfig()


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        tax = TaxConfig(**data.get("tax", {}))
        limits = LimitsConfig(**data.get("limits", {}))
        export = ExportConfig(**data.get("export", {}))
        return Settings(tax=tax, limits=limits, export=export)

    return Settings()
