"""
Service Configuration
=====================

Single configuration tree for the whole service. Every field has a
default; `ServiceConfig.from_env()` overlays ANIMALITO_* environment
variables.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from typing import Mapping, Optional
import logging
import os

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from acquisition.fetcher import DEFAULT_USER_AGENT
from prediction.history import MAX_HISTORY

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Caracas"
CARACAS_OFFSET = timezone(timedelta(hours=-4), "VET")

ORACLE_PROVIDERS = ("none", "mock", "gemini")


@dataclass
class AcquisitionConfig:
    """Source chain and transport settings."""
    sources_path: Optional[Path] = None     # None → bundled sources.json
    min_interval_seconds: Optional[float] = None   # None → value from sources file
    timeout_seconds: Optional[float] = None
    user_agent: str = DEFAULT_USER_AGENT
    relays_enabled: bool = True


@dataclass
class EngineConfig:
    max_history: int = MAX_HISTORY
    default_predictions: int = 5


@dataclass
class OracleConfig:
    """Optional refinement pass. Disabled unless a provider is named."""
    provider: str = "none"                  # none | mock | gemini
    model: str = "gemini-2.0-flash"
    api_key: Optional[str] = None
    min_predictions: int = 3
    timeout_seconds: float = 30.0

    def __post_init__(self):
        if self.provider not in ORACLE_PROVIDERS:
            raise ValueError(f"Unknown oracle provider: {self.provider!r}")

    @property
    def enabled(self) -> bool:
        return self.provider != "none"


@dataclass
class RefreshConfig:
    countdown_interval_seconds: float = 1.0
    refresh_interval_seconds: float = 300.0
    refresh_on_start: bool = True


@dataclass
class ServiceConfig:
    """Unified configuration for the service."""
    acquisition: AcquisitionConfig = None
    engine: EngineConfig = None
    oracle: OracleConfig = None
    refresh: RefreshConfig = None
    cache_dir: Optional[Path] = None        # None → in-memory cache
    timezone_name: str = DEFAULT_TIMEZONE
    lotteries: tuple = field(default_factory=lambda: ("LOTTO_ACTIVO", "GUACHARO"))

    def __post_init__(self):
        self.acquisition = self.acquisition or AcquisitionConfig()
        self.engine = self.engine or EngineConfig()
        self.oracle = self.oracle or OracleConfig()
        self.refresh = self.refresh or RefreshConfig()

    @property
    def timezone(self) -> tzinfo:
        """Draw times are local to the lottery; resolve the zone lazily."""
        try:
            return ZoneInfo(self.timezone_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Time zone %s unavailable; using fixed UTC-4", self.timezone_name)
            return CARACAS_OFFSET

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServiceConfig':
        """
        Build configuration from environment variables.

        Recognized: ANIMALITO_CACHE_DIR, ANIMALITO_SOURCES,
        ANIMALITO_RATE_LIMIT, ANIMALITO_TIMEOUT, ANIMALITO_USER_AGENT,
        ANIMALITO_RELAYS, ANIMALITO_MAX_HISTORY, ANIMALITO_PREDICTIONS,
        ANIMALITO_ORACLE, ANIMALITO_ORACLE_MODEL, ANIMALITO_MIN_PREDICTIONS,
        ANIMALITO_REFRESH_INTERVAL, ANIMALITO_TIMEZONE, GEMINI_API_KEY.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(name)
            return value if value not in (None, "") else None

        def number(name: str, cast=float, default=None, positive: bool = False):
            value = get(name)
            if value is None:
                return default
            try:
                parsed = cast(value)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {value!r}") from None
            if parsed < 0 or (positive and parsed == 0):
                raise ValueError(f"{name} must be {'positive' if positive else 'non-negative'}, got {value!r}")
            return parsed

        def flag(name: str, default: bool) -> bool:
            value = get(name)
            if value is None:
                return default
            return value.strip().lower() in ("1", "true", "yes", "on")

        sources = get("ANIMALITO_SOURCES")
        acquisition = AcquisitionConfig(
            sources_path=Path(sources) if sources else None,
            min_interval_seconds=number("ANIMALITO_RATE_LIMIT"),
            timeout_seconds=number("ANIMALITO_TIMEOUT", positive=True),
            user_agent=get("ANIMALITO_USER_AGENT") or DEFAULT_USER_AGENT,
            relays_enabled=flag("ANIMALITO_RELAYS", True),
        )

        engine = EngineConfig(
            max_history=number("ANIMALITO_MAX_HISTORY", int, MAX_HISTORY, positive=True),
            default_predictions=number("ANIMALITO_PREDICTIONS", int, EngineConfig.default_predictions, positive=True),
        )

        api_key = get("GEMINI_API_KEY") or get("API_KEY")
        provider = (get("ANIMALITO_ORACLE") or ("gemini" if api_key else "none")).lower()
        oracle = OracleConfig(
            provider=provider,
            model=get("ANIMALITO_ORACLE_MODEL") or OracleConfig.model,
            api_key=api_key,
            min_predictions=number("ANIMALITO_MIN_PREDICTIONS", int, OracleConfig.min_predictions),
        )

        refresh = RefreshConfig(
            refresh_interval_seconds=number(
                "ANIMALITO_REFRESH_INTERVAL", float, RefreshConfig.refresh_interval_seconds, positive=True
            ),
        )

        cache_dir = get("ANIMALITO_CACHE_DIR")
        return cls(
            acquisition=acquisition,
            engine=engine,
            oracle=oracle,
            refresh=refresh,
            cache_dir=Path(cache_dir) if cache_dir else None,
            timezone_name=get("ANIMALITO_TIMEZONE") or DEFAULT_TIMEZONE,
        )
