"""
Tests for configuration loading.
"""

import json
import logging
from pathlib import Path

from cryptoflow.utils.config_loader import (
    DEFAULT_BROADCAST_PAIRS,
    DEFAULT_FALLBACK_RATES,
    AppConfig,
    get_telegram_credentials,
    load_config,
    parse_config,
)
from cryptoflow.utils.logging_config import ContextTextFormatter, LogContext, setup_logging

CONFIG_FILE = Path(__file__).resolve().parents[1] / "config" / "config.yaml"


class TestLoadConfig:
    """Tests for load_config and parse_config."""

    def test_missing_file_uses_defaults(self, tmp_path) -> None:
        config = load_config(tmp_path / "missing.yaml")

        assert config == AppConfig()
        assert config.rates.cache_ttl_seconds == 30
        assert config.sources.priority == ["coingecko", "binance", "bybit"]

    def test_empty_file_uses_defaults(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert load_config(config_file) == AppConfig()

    def test_shipped_config_matches_defaults(self) -> None:
        config = load_config(CONFIG_FILE)

        assert config.rates.fallbacks == DEFAULT_FALLBACK_RATES
        assert config.rates.fiat_multipliers["mdl"] == 18.0
        assert config.fees.platform_fee_pct == 0.5
        assert config.broadcast.pairs == [list(p) for p in DEFAULT_BROADCAST_PAIRS]
        assert config.orders.rate_lock_minutes == 10

    def test_partial_sections(self) -> None:
        config = parse_config({
            "rates": {"cache_ttl_seconds": 60, "overrides": {"BTC-card-mdl": 1700000}},
            "fees": {"platform_fee_pct": 1.0},
            "broadcast": {"enabled": False},
        })

        assert config.rates.cache_ttl_seconds == 60
        assert config.rates.overrides == {"btc-card-mdl": 1700000.0}
        assert config.rates.fallbacks == DEFAULT_FALLBACK_RATES
        assert config.fees.platform_fee_pct == 1.0
        assert config.fees.network_fees == {"usdt-trc20": 2.0, "usdt-erc20": 2.0}
        assert config.broadcast.enabled is False
        assert config.broadcast.interval_seconds == 900

    def test_null_sections_are_defaults(self) -> None:
        config = parse_config({"rates": None, "wallets": None, "currencies": None})

        assert config.rates == AppConfig().rates
        assert config.wallets == {}
        assert config.currencies == []

    def test_wallets_and_currencies(self) -> None:
        config = parse_config({
            "wallets": {"btc": "bc1qwallet"},
            "currencies": [{"id": "btc", "name": "Bitcoin", "symbol": "BTC", "type": "crypto"}],
        })

        assert config.wallets == {"btc": "bc1qwallet"}
        assert config.currencies[0]["id"] == "btc"


class TestTelegramCredentials:
    """Tests for get_telegram_credentials."""

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", " 123456:ABC-def_ghi ")
        monkeypatch.setenv("TELEGRAM_CHAT_ID", "-1001234567890")

        assert get_telegram_credentials(AppConfig()) == ("123456:ABC-def_ghi", "-1001234567890")

    def test_missing_values_are_empty(self, monkeypatch) -> None:
        monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
        monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)

        assert get_telegram_credentials(AppConfig()) == ("", "")

    def test_custom_variable_names(self, monkeypatch) -> None:
        config = parse_config({"telegram": {"bot_token_env": "MY_TOKEN", "chat_id_env": "MY_CHAT"}})
        monkeypatch.setenv("MY_TOKEN", "42:token")
        monkeypatch.setenv("MY_CHAT", "99")

        assert get_telegram_credentials(config) == ("42:token", "99")


class TestLoggingSetup:
    """Tests for setup_logging and LogContext."""

    def test_json_log_file_includes_context_fields(self, tmp_path) -> None:
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(level="DEBUG", log_format="json", log_file=log_file)
        logger = logging.getLogger("cryptoflow.test")

        try:
            with LogContext(logger, order_id="CF-AB12CD34"):
                logger.info("order created")
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)

        entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert entry["message"] == "order created"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "cryptoflow.test"
        assert entry["order_id"] == "CF-AB12CD34"

    def test_nested_contexts_merge(self, caplog) -> None:
        logger = logging.getLogger("cryptoflow.test")

        with caplog.at_level(logging.INFO, logger="cryptoflow.test"):
            with LogContext(logger, order_id="CF-AB12CD34", rate_source="fallback"):
                with LogContext(logger, rate_source="live"):
                    logger.info("inner")
                logger.info("outer")
            logger.info("outside")

        inner, outer, outside = caplog.records
        assert (inner.order_id, inner.rate_source) == ("CF-AB12CD34", "live")
        assert (outer.order_id, outer.rate_source) == ("CF-AB12CD34", "fallback")
        assert not hasattr(outside, "order_id")

    def test_text_format_appends_context(self) -> None:
        formatter = ContextTextFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("cryptoflow.test", logging.WARNING, __file__, 1, "source failed", None, None)
        record.pair = "btc-usd"
        record.source = "binance"

        assert formatter.format(record) == "WARNING source failed [pair=btc-usd source=binance]"

    def test_text_format_without_context(self) -> None:
        formatter = ContextTextFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("cryptoflow.test", logging.INFO, __file__, 1, "ready", None, None)

        assert formatter.format(record) == "INFO ready"
