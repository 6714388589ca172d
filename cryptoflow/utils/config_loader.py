"""
Configuration loader module.

Loads application configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# Last-known-good rates, keyed by the literal "from-to" pair string.
DEFAULT_FALLBACK_RATES: dict[str, float] = {
    "usdt-trc20-card-mdl": 16.16,
    "usdt-erc20-card-mdl": 16.14,
    "btc-usdt-trc20": 97500.00,
    "btc-usdt-erc20": 97500.00,
    "eth-usdt-trc20": 3850.00,
    "eth-usdt-erc20": 3850.00,
    "usdt-trc20-card-usd": 1.0,
    "usdt-erc20-card-usd": 1.0,
    "usdc-card-usd": 1.0,
    "btc-card-usd": 90000.0,
    "eth-card-usd": 3200.0,
    "usdt-trc20-card-eur": 0.92,
    "usdt-erc20-btc": 0.000011,
    "usdt-trc20-btc": 0.000011,
    "usdt-erc20-eth": 0.0003125,
    "usdt-trc20-eth": 0.0003125,
}

# USD -> fiat multipliers applied after the asset -> USD leg.
DEFAULT_FIAT_MULTIPLIERS: dict[str, float] = {
    "usd": 1.0,
    "eur": 0.85,
    "mdl": 18.0,
}

DEFAULT_BROADCAST_PAIRS: list[list[str]] = [
    ["usdt-trc20", "card-mdl"],
    ["usdt-erc20", "card-mdl"],
    ["usdt-trc20", "card-usd"],
    ["usdt-erc20", "card-usd"],
    ["usdc", "card-usd"],
    ["btc", "usdt-trc20"],
    ["eth", "usdt-trc20"],
]


@dataclass
class RatesConfig:
    """Rate resolution configuration."""

    cache_ttl_seconds: int = 30
    source_timeout_seconds: float = 5.0
    resolution_deadline_seconds: float = 10.0
    fiat_multipliers: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FIAT_MULTIPLIERS))
    overrides: dict[str, float] = field(default_factory=dict)
    fallbacks: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FALLBACK_RATES))


@dataclass
class SourcesConfig:
    """Upstream market-data endpoints, in priority order."""

    priority: list[str] = field(default_factory=lambda: ["coingecko", "binance", "bybit"])
    coingecko_url: str = "https://api.coingecko.com"
    binance_url: str = "https://api.binance.com"
    bybit_url: str = "https://api.bybit.com"


@dataclass
class FeesConfig:
    """Order fee configuration."""

    platform_fee_pct: float = 0.5
    network_fees: dict[str, float] = field(
        default_factory=lambda: {"usdt-trc20": 2.0, "usdt-erc20": 2.0}
    )
    default_network_fee: float = 0.0001


@dataclass
class OrdersConfig:
    """Order lifecycle configuration."""

    rate_lock_minutes: int = 10
    id_prefix: str = "CF-"


@dataclass
class BroadcastConfig:
    """Periodic rate refresh and broadcast configuration."""

    enabled: bool = True
    interval_seconds: int = 900
    delivery_timeout_seconds: float = 5.0
    pairs: list[list[str]] = field(default_factory=lambda: [list(p) for p in DEFAULT_BROADCAST_PAIRS])


@dataclass
class TelegramConfig:
    """Telegram notification configuration."""

    bot_token_env: str = "TELEGRAM_BOT_TOKEN"
    chat_id_env: str = "TELEGRAM_CHAT_ID"
    api_url: str = "https://api.telegram.org"
    timeout_seconds: float = 10.0


@dataclass
class HistoryConfig:
    """Rate history configuration."""

    enabled: bool = True
    history_file: str = "data/history/rate_history.csv"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"
    log_file: str | None = None


@dataclass
class RateLimitSettings:
    """HTTP rate limiting configuration."""

    enabled: bool = True
    api_rpm: int = 100
    order_limit: int = 3
    order_window_seconds: int = 300


@dataclass
class AppConfig:
    """
    Main application configuration.

    Aggregates all configuration sections into a single object.
    `currencies` and `wallets` are raw lists/dicts consumed by the
    currency catalog and deposit address book; empty means built-in defaults.
    """

    rates: RatesConfig = field(default_factory=RatesConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    fees: FeesConfig = field(default_factory=FeesConfig)
    orders: OrdersConfig = field(default_factory=OrdersConfig)
    broadcast: BroadcastConfig = field(default_factory=BroadcastConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    currencies: list[dict[str, Any]] = field(default_factory=list)
    wallets: dict[str, str] = field(default_factory=dict)


def load_env(env_file: Path = Path(".env")) -> None:
    """
    Load environment variables from .env file.

    Args:
        env_file: Path to .env file.
    """
    if env_file.exists():
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from: {env_file}")
    else:
        logger.debug(f"No .env file found at: {env_file}")


def load_config(config_file: Path = Path("config/config.yaml")) -> AppConfig:
    """
    Load application configuration from YAML file.

    Args:
        config_file: Path to configuration YAML file.

    Returns:
        AppConfig: Loaded configuration object.

    Raises:
        yaml.YAMLError: If config file is invalid.
    """
    config_file = Path(config_file)
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}. Using defaults.")
        return AppConfig()

    with open(config_file, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        return AppConfig()

    config = parse_config(raw_config)
    logger.info(f"Loaded configuration from: {config_file}")
    return config


def _float_map(raw: dict[str, Any] | None, default: dict[str, float]) -> dict[str, float]:
    if raw is None:
        return dict(default)
    return {str(k).lower(): float(v) for k, v in raw.items()}


def parse_config(raw: dict[str, Any]) -> AppConfig:
    """
    Parse raw YAML dict into AppConfig dataclass.

    Args:
        raw: Raw dictionary from YAML file.

    Returns:
        AppConfig: Parsed configuration object.
    """
    # Parse rates config
    rates_raw = raw.get("rates", {}) or {}
    rates = RatesConfig(
        cache_ttl_seconds=rates_raw.get("cache_ttl_seconds", 30),
        source_timeout_seconds=rates_raw.get("source_timeout_seconds", 5.0),
        resolution_deadline_seconds=rates_raw.get("resolution_deadline_seconds", 10.0),
        fiat_multipliers=_float_map(rates_raw.get("fiat_multipliers"), DEFAULT_FIAT_MULTIPLIERS),
        overrides=_float_map(rates_raw.get("overrides"), {}),
        fallbacks=_float_map(rates_raw.get("fallbacks"), DEFAULT_FALLBACK_RATES),
    )

    # Parse sources config
    sources_raw = raw.get("sources", {}) or {}
    sources = SourcesConfig(
        priority=list(sources_raw.get("priority", ["coingecko", "binance", "bybit"])),
        coingecko_url=sources_raw.get("coingecko_url", "https://api.coingecko.com"),
        binance_url=sources_raw.get("binance_url", "https://api.binance.com"),
        bybit_url=sources_raw.get("bybit_url", "https://api.bybit.com"),
    )

    # Parse fees config
    fees_raw = raw.get("fees", {}) or {}
    fees = FeesConfig(
        platform_fee_pct=fees_raw.get("platform_fee_pct", 0.5),
        network_fees=_float_map(
            fees_raw.get("network_fees"), {"usdt-trc20": 2.0, "usdt-erc20": 2.0}
        ),
        default_network_fee=fees_raw.get("default_network_fee", 0.0001),
    )

    # Parse orders config
    orders_raw = raw.get("orders", {}) or {}
    orders = OrdersConfig(
        rate_lock_minutes=orders_raw.get("rate_lock_minutes", 10),
        id_prefix=orders_raw.get("id_prefix", "CF-"),
    )

    # Parse broadcast config
    broadcast_raw = raw.get("broadcast", {}) or {}
    broadcast = BroadcastConfig(
        enabled=broadcast_raw.get("enabled", True),
        interval_seconds=broadcast_raw.get("interval_seconds", 900),
        delivery_timeout_seconds=float(broadcast_raw.get("delivery_timeout_seconds", 5.0)),
        pairs=[list(p) for p in broadcast_raw.get("pairs", DEFAULT_BROADCAST_PAIRS)],
    )

    # Parse telegram config
    telegram_raw = raw.get("telegram", {}) or {}
    telegram = TelegramConfig(
        bot_token_env=telegram_raw.get("bot_token_env", "TELEGRAM_BOT_TOKEN"),
        chat_id_env=telegram_raw.get("chat_id_env", "TELEGRAM_CHAT_ID"),
        api_url=telegram_raw.get("api_url", "https://api.telegram.org"),
        timeout_seconds=telegram_raw.get("timeout_seconds", 10.0),
    )

    # Parse history config
    history_raw = raw.get("history", {}) or {}
    history = HistoryConfig(
        enabled=history_raw.get("enabled", True),
        history_file=history_raw.get("history_file", "data/history/rate_history.csv"),
    )

    # Parse logging config
    logging_raw = raw.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", "text"),
        log_file=logging_raw.get("log_file"),
    )

    # Parse rate limit config
    rate_limit_raw = raw.get("rate_limit", {}) or {}
    rate_limit = RateLimitSettings(
        enabled=rate_limit_raw.get("enabled", True),
        api_rpm=rate_limit_raw.get("api_rpm", 100),
        order_limit=rate_limit_raw.get("order_limit", 3),
        order_window_seconds=rate_limit_raw.get("order_window_seconds", 300),
    )

    return AppConfig(
        rates=rates,
        sources=sources,
        fees=fees,
        orders=orders,
        broadcast=broadcast,
        telegram=telegram,
        history=history,
        logging=logging_config,
        rate_limit=rate_limit,
        currencies=list(raw.get("currencies", []) or []),
        wallets={str(k): str(v) for k, v in (raw.get("wallets", {}) or {}).items()},
    )


def get_env_var(key: str, default: str | None = None) -> str | None:
    """
    Get an environment variable with optional default.

    Args:
        key: Environment variable name.
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(key, default)


def get_telegram_credentials(config: AppConfig) -> tuple[str, str]:
    """
    Get the Telegram bot token and chat id from the environment.

    Returns:
        Tuple of (bot_token, chat_id); empty strings when unset.
    """
    token = get_env_var(config.telegram.bot_token_env, "") or ""
    chat_id = get_env_var(config.telegram.chat_id_env, "") or ""
    return token.strip(), chat_id.strip()
