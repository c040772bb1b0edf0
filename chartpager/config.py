"""Configuration loading for chart paging sessions."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .periods import PERIOD_SPECS, Period, parse_period

DEFAULT_SETTINGS_PATH = Path("configs/settings.yaml")


class CalendarSettings(BaseModel):
    timezone: str = "UTC"


class WindowSettings(BaseModel):
    load_threshold: float = Field(0.3, gt=0.0, lt=1.0)
    initial_pages: int = Field(2, ge=1)


class ViewSettings(BaseModel):
    default_period: Period = Period.WEEK
    buffer_multiplier: float = Field(2.5, ge=1.0)
    debounce_ms: int = Field(100, ge=0)
    headroom: float = Field(1.2, ge=1.0)


class DomainSettings(BaseModel):
    floors: Dict[Period, float] = Field(
        default_factory=lambda: {period: spec.domain_floor for period, spec in PERIOD_SPECS.items()}
    )

    def floor_for(self, period: Period) -> float:
        if period in self.floors:
            return float(self.floors[period])
        return PERIOD_SPECS[period].domain_floor


class Settings(BaseModel):
    calendar: CalendarSettings = Field(default_factory=CalendarSettings)
    window: WindowSettings = Field(default_factory=WindowSettings)
    view: ViewSettings = Field(default_factory=ViewSettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[Path | str] = None) -> Settings:
    """Load settings from YAML (if given) and environment variables."""

    load_dotenv()
    raw = _load_yaml(Path(path)) if path is not None else {}
    settings = Settings.model_validate(raw)

    # allow overriding via environment variables
    timezone_name = os.getenv("CHARTPAGER_TIMEZONE")
    period = os.getenv("CHARTPAGER_PERIOD")
    if timezone_name:
        settings.calendar.timezone = timezone_name
    if period:
        settings.view.default_period = parse_period(period)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    configured = os.getenv("CHARTPAGER_SETTINGS")
    if configured:
        return load_settings(configured)
    if DEFAULT_SETTINGS_PATH.exists():
        return load_settings(DEFAULT_SETTINGS_PATH)
    return load_settings(None)
