"""Headless access to the dashboard's data.

Usage:
    coinboard-cli price btc rub
    coinboard-cli chart eth usd --period 7d
    coinboard-cli convert 0.5 btc eur
    coinboard-cli convert 1000 btc rub --reverse
    coinboard-cli halving
    coinboard-cli pairs
    coinboard-cli set-key coincap
"""

import argparse
import asyncio
import getpass
from pathlib import Path

from loguru import logger

from coinboard.axis import compute_price_axis
from coinboard.catalog import FIAT_OPTIONS, crypto_name
from coinboard.charts import ChartService
from coinboard.config import set_api_key, settings
from coinboard.converter import Converter, Direction
from coinboard.formatting import (
    day_label,
    format_block,
    format_change,
    format_price,
    format_short_date,
    format_tooltip_date,
    pair_label,
)
from coinboard.halving import (
    HALVING_STEPS,
    HalvingCountdown,
    build_step_chart,
    halving_points,
)
from coinboard.logging_config import setup_logging
from coinboard.periods import TIME_PERIODS
from coinboard.pricing import PriceService
from coinboard.sources import build_sources, create_http_client
from coinboard.utils.time import to_datetime


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="coinboard-cli", description="Crypto prices, charts and halving countdown."
    )
    p.add_argument("--locale", default=settings.general.locale, choices=("ru", "en"))
    p.add_argument("--log-level", default="WARNING", help="Console log level")
    sub = p.add_subparsers(dest="command", required=True)

    price = sub.add_parser("price", help="Current price and 24h change")
    price.add_argument("crypto", nargs="?", default=settings.general.default_crypto)
    price.add_argument("currency", nargs="?", default=settings.general.default_currency)

    chart = sub.add_parser("chart", help="Historical close prices")
    chart.add_argument("crypto", nargs="?", default=settings.general.default_crypto)
    chart.add_argument("currency", nargs="?", default=settings.general.default_currency)
    chart.add_argument(
        "--period", default=settings.charts.default_period, choices=list(TIME_PERIODS)
    )

    convert = sub.add_parser("convert", help="Convert between a coin and a currency")
    convert.add_argument("amount")
    convert.add_argument("crypto")
    convert.add_argument("currency")
    convert.add_argument(
        "--reverse", action="store_true", help="Amount is in the currency, not the coin"
    )

    sub.add_parser("halving", help="Countdown to the next Bitcoin halving")
    sub.add_parser("pairs", help="Supported coins and currencies")

    set_key = sub.add_parser("set-key", help="Store a data provider API key in the keyring")
    set_key.add_argument("provider", choices=("coincap",))
    set_key.add_argument("--key", help="The key; prompted for when omitted")
    return p.parse_args(argv)


async def _cmd_price(args: argparse.Namespace, prices: PriceService) -> int:
    price = await prices.get_crypto_price(args.crypto, args.currency)
    if price is None:
        print(f"Failed to get price for {pair_label(args.crypto, args.currency)}.")
        return 1
    print(
        f"{pair_label(args.crypto, args.currency)}  "
        f"{format_price(price.current_price, args.locale)}  "
        f"{format_change(price.price_change_24h, args.locale)} "
        f"({format_change(price.price_change_percentage_24h, args.locale)}%)  "
        f"[{price.source}]"
    )
    return 0


async def _cmd_chart(args: argparse.Namespace, charts: ChartService) -> int:
    response = await charts.get_historical_data(args.crypto, args.currency, args.period)
    if response.error:
        print(f"Warning: {response.error}")
    if not response.data:
        return 1

    for point in response.data:
        print(f"{point.formatted_date:>12}  {format_price(point.price, args.locale)}")

    prices = [p.price for p in response.data]
    axis = compute_price_axis(prices)
    first, last = response.data[0], response.data[-1]
    print(
        f"Min {format_price(axis.min_price, args.locale)}  "
        f"Max {format_price(axis.max_price, args.locale)}  "
        f"({format_tooltip_date(to_datetime(first.timestamp), args.period, args.locale)}"
        f" - {format_tooltip_date(to_datetime(last.timestamp), args.period, args.locale)})"
    )
    return 0 if response.error is None else 1


async def _cmd_convert(args: argparse.Namespace, prices: PriceService) -> int:
    converter = Converter(crypto=args.crypto, fiat=args.currency, amount=args.amount)
    if args.reverse:
        converter.direction = Direction.FIAT_TO_CRYPTO

    price = await prices.get_crypto_price(converter.crypto, converter.fiat)
    rate = price.current_price if price else None
    result = converter.display_to_amount(rate, args.locale)
    if not result:
        print("Conversion unavailable (invalid amount or no rate).")
        return 1
    print(f"{args.amount} -> {result}")
    print(converter.rate_label(rate, args.locale))
    return 0


def _cmd_halving(args: argparse.Namespace) -> int:
    state = HalvingCountdown().tick()
    if state.expired or state.next_date is None:
        print("All scheduled halvings have passed.")
    else:
        r = state.remaining
        print(
            f"Next halving {format_short_date(state.next_date)}: "
            f"{r.days} {day_label(r.days, args.locale)} "
            f"{r.hours:02d}:{r.minutes:02d}:{r.seconds:02d}"
        )
    for point in halving_points(build_step_chart(HALVING_STEPS)):
        after = point.reward_after if point.reward_after is not None else point.reward
        print(
            f"{point.year}  block {format_block(point.block, args.locale):>10}  "
            f"{point.reward:g} -> {after:g} BTC  {point.status}"
        )
    return 0


async def _cmd_pairs(args: argparse.Namespace, prices: PriceService) -> int:
    cryptos = await prices.get_supported_cryptos()
    print(f"Coins ({len(cryptos)}):")
    for symbol in cryptos:
        print(f"  {symbol:<10} {crypto_name(symbol)}")
    print("Currencies:")
    for option in FIAT_OPTIONS:
        print(f"  {option.code:<6} {option.symbol} {option.label}")
    return 0


def _cmd_set_key(args: argparse.Namespace) -> int:
    api_key = (args.key or getpass.getpass(f"{args.provider} API key: ")).strip()
    if not api_key:
        print("No key given; nothing stored.")
        return 1
    if not set_api_key(args.provider, api_key):
        print("Could not store the key in the system keyring.")
        return 1
    print(f"Stored the {args.provider} API key.")
    return 0


async def main_async(args: argparse.Namespace) -> int:
    if args.command == "halving":
        return _cmd_halving(args)
    if args.command == "set-key":
        return _cmd_set_key(args)

    async with create_http_client() as client:
        sources = build_sources(client, settings)
        if not sources:
            print("No price sources are enabled.")
            return 1
        prices = PriceService(sources)
        if args.command == "price":
            return await _cmd_price(args, prices)
        if args.command == "chart":
            charts = ChartService(
                sources,
                locale=args.locale,
                placeholder_on_failure=settings.charts.placeholder_on_failure,
            )
            return await _cmd_chart(args, charts)
        if args.command == "convert":
            return await _cmd_convert(args, prices)
        return await _cmd_pairs(args, prices)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    log_dir = settings.general.log_directory
    setup_logging(
        console_level=args.log_level,
        file_level=settings.general.log_level_file,
        log_dir=Path(log_dir) if log_dir else None,
    )
    try:
        return asyncio.run(main_async(args))
    except KeyboardInterrupt:
        return 130
    except Exception:
        logger.exception("Unhandled error in coinboard-cli.")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
