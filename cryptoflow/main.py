"""
CLI entry point for the CryptoFlow exchange.

Resolves rates and prices quotes from the command line, or serves the
web API.
"""

import argparse
import asyncio
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence

from cryptoflow.pricing.order_pricer import InsufficientAmountError
from cryptoflow.services.container import build_services
from cryptoflow.storage.currency_catalog import CurrencyNotFoundError
from cryptoflow.utils.config_loader import AppConfig, load_config, load_env
from cryptoflow.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="CryptoFlow exchange rates and quotes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    cryptoflow rate btc card-usd
    cryptoflow rates
    cryptoflow quote usdt-trc20 card-mdl 1000 --fixed
    cryptoflow serve --port 8000
        """,
    )

    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    rate_parser = subparsers.add_parser("rate", help="Resolve one rate")
    rate_parser.add_argument("from_currency")
    rate_parser.add_argument("to_currency")

    subparsers.add_parser("rates", help="Resolve every configured display pair")

    quote_parser = subparsers.add_parser("quote", help="Price an order without creating it")
    quote_parser.add_argument("from_currency")
    quote_parser.add_argument("to_currency")
    quote_parser.add_argument("amount")
    quote_parser.add_argument(
        "--fixed",
        action="store_true",
        help="Fixed rate (locked for the configured period)",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the web API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def _print_rate(payload: dict) -> None:
    flag = "  [DEGRADED]" if payload["degraded"] else ""
    print(
        f"  {payload['fromCurrency']:>12} -> {payload['toCurrency']:<12} "
        f"{payload['rate']:>20}  ({payload['source']}){flag}"
    )


async def run_rate(config: AppConfig, from_currency: str, to_currency: str) -> int:
    services = build_services(config)
    try:
        rate = await services.resolver.resolve(from_currency, to_currency)
    finally:
        await services.aclose()
    _print_rate(rate.to_payload())
    return 0


async def run_rates(config: AppConfig) -> int:
    services = build_services(config)
    try:
        rates = await services.resolver.resolve_many(
            (pair[0], pair[1]) for pair in config.broadcast.pairs
        )
    finally:
        await services.aclose()

    print("\n" + "=" * 60)
    print("EXCHANGE RATES")
    print("=" * 60)
    for rate in rates:
        _print_rate(rate.to_payload())
    print("=" * 60 + "\n")
    return 0


async def run_quote(
    config: AppConfig,
    from_currency: str,
    to_currency: str,
    amount: Decimal,
    fixed: bool,
) -> int:
    services = build_services(config)
    try:
        pricing = await services.pricer.price_order(
            from_currency, to_currency, amount, "fixed" if fixed else "float"
        )
    finally:
        await services.aclose()

    print("\n" + "=" * 60)
    print("QUOTE")
    print("=" * 60)
    print(f"  Amount:       {pricing.from_amount} {pricing.from_currency}")
    print(f"  Platform fee: {pricing.platform_fee}")
    print(f"  Network fee:  {pricing.network_fee}")
    print(f"  Net amount:   {pricing.net_amount}")
    print(f"  Rate:         {pricing.exchange_rate} ({pricing.rate_origin.value})")
    print(f"  You receive:  {pricing.to_amount} {pricing.to_currency}")
    if pricing.rate_lock_expiry:
        print(f"  Rate locked until: {pricing.rate_lock_expiry.isoformat()}")
    print("=" * 60 + "\n")
    return 0


def run_serve(config_path: Path, host: str, port: int) -> int:
    import uvicorn

    from cryptoflow.webapp.main import create_app

    app = create_app(config=load_config(config_path))
    uvicorn.run(app, host=host, port=port)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        int: Exit code.
    """
    load_env()
    args = parse_args(argv)

    config = load_config(args.config)
    level = "DEBUG" if args.verbose else config.logging.level
    setup_logging(level=level, log_format=config.logging.format, log_file=config.logging.log_file)

    try:
        if args.command == "rate":
            return asyncio.run(run_rate(config, args.from_currency, args.to_currency))
        if args.command == "rates":
            return asyncio.run(run_rates(config))
        if args.command == "quote":
            try:
                amount = Decimal(args.amount)
            except InvalidOperation:
                print(f"\n✗ Error: invalid amount: {args.amount}")
                return 2
            return asyncio.run(
                run_quote(config, args.from_currency, args.to_currency, amount, args.fixed)
            )
        if args.command == "serve":
            return run_serve(args.config, args.host, args.port)
    except CurrencyNotFoundError as e:
        print(f"\n✗ Error: {e}")
        return 1
    except (InsufficientAmountError, ValueError) as e:
        print(f"\n✗ Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        print(f"\n✗ Fatal error: {e}")
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())
