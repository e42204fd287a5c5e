"""Configuration system using pydantic-settings with environment variable loading.

Environment variables provide the defaults; command-line flags override them.
Every validation failure surfaces as ConfigError before any network or
terminal I/O begins.
"""

import argparse
import logging
from collections.abc import Sequence
from typing import Annotated

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from cryptowatcher.exceptions import ConfigError


class ExchangeSettings(BaseSettings):
    """Public market-data endpoint settings."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    exchange_id: str = "binance"
    quote_asset: str = "USDT"
    request_timeout: float = Field(30.0, gt=0)  # seconds, per request
    kline_timeframe: str = "15m"

    @field_validator("quote_asset")
    @classmethod
    def _normalize_quote(cls, value: str) -> str:
        value = value.strip().upper()
        if not value.isalnum():
            raise ValueError(f"invalid quote asset {value!r}")
        return value


class DashboardSettings(BaseSettings):
    """Tracked assets and refresh behaviour."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    symbols: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["BTC", "ETH"])
    refresh_interval: int = Field(60, ge=1)  # seconds between ticks
    page_size: int = Field(4, ge=1, le=4)
    history_capacity: int = Field(60, ge=1, le=1000)
    max_assets: int = Field(20, ge=1)

    @field_validator("symbols", mode="before")
    @classmethod
    def _split_symbols(cls, value: object) -> object:
        if isinstance(value, str):
            return [part for part in value.split(",")]
        return value

    @field_validator("symbols")
    @classmethod
    def _normalize_symbols(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for raw in value:
            symbol = raw.strip().upper()
            if not symbol or not symbol.isalnum():
                raise ValueError(f"invalid coin symbol {raw!r}")
            if symbol not in seen:
                seen.append(symbol)
        if not seen:
            raise ValueError("no coin symbols provided")
        return seen

    @model_validator(mode="after")
    def _check_asset_limit(self) -> "DashboardSettings":
        if len(self.symbols) > self.max_assets:
            raise ValueError(
                f"too many coins: {len(self.symbols)} given, at most {self.max_assets} supported"
            )
        return self


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_file: str | None = "cryptowatcher.log"
    exchange: ExchangeSettings = Field(default_factory=ExchangeSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def market_symbols(self) -> list[str]:
        """Tracked assets as exchange market symbols, e.g. ``BTC/USDT``."""
        quote = self.exchange.quote_asset
        return [f"{base}/{quote}" for base in self.dashboard.symbols]


def _comma_list(value: str) -> list[str]:
    return value.split(",")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cryptowatcher",
        description="Real-time cryptocurrency price watcher with terminal charts",
    )
    parser.add_argument(
        "-c",
        "--coins",
        type=_comma_list,
        default=None,
        help="comma separated coin symbols (default: BTC,ETH)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=int,
        default=None,
        help="refresh interval in seconds (default: 60)",
    )
    parser.add_argument("--page-size", type=int, default=None, help="charts per page (1-4)")
    parser.add_argument("--log-level", default=None, help="log level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="log file path")
    return parser


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"])
        msg = error["msg"].removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def build_settings(argv: Sequence[str] | None = None) -> AppSettings:
    """Parse CLI flags over environment defaults into validated settings.

    Raises:
        ConfigError: If any value is invalid.
    """
    args = build_parser().parse_args(argv)

    dashboard_overrides: dict = {}
    if args.coins is not None:
        dashboard_overrides["symbols"] = args.coins
    if args.interval is not None:
        dashboard_overrides["refresh_interval"] = args.interval
    if args.page_size is not None:
        dashboard_overrides["page_size"] = args.page_size

    app_overrides: dict = {}
    if args.log_level is not None:
        app_overrides["log_level"] = args.log_level
    if args.log_file is not None:
        app_overrides["log_file"] = args.log_file

    try:
        return AppSettings(
            exchange=ExchangeSettings(),
            dashboard=DashboardSettings(**dashboard_overrides),
            **app_overrides,
        )
    except ValidationError as exc:
        raise ConfigError(_describe(exc)) from exc
