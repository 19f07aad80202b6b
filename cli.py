#!/usr/bin/env python3
"""Command-line access to the quote aggregator"""

import argparse
import asyncio
import sys
from decimal import Decimal
from typing import Optional

from dexroute.api.dependencies import Container, build_container
from dexroute.core.errors import SwapError
from dexroute.core.swap.constants import DEFAULT_SLIPPAGE
from dexroute.logging_config import setup_logging
from dexroute.services.token_resolution import AssetRef


def format_units(amount: int, decimals: int) -> str:
    value = Decimal(amount) / (Decimal(10) ** decimals)
    return f"{value:,.6f}".rstrip("0").rstrip(".")


def _decimals(container: Container, asset: str, network_id: int) -> int:
    token = container.resolver.lookup(AssetRef.parse(asset), network_id)
    return token.decimals if token else 18


async def cli_quote(container: Container, network: str, sell: str, buy: str, amount: int, slippage: str):
    """Best quote for a pair on one network"""
    net = container.chains.resolve(network)
    sell_address = container.resolver.resolve_asset_address(sell, net.network_id)
    buy_address = container.resolver.resolve_asset_address(buy, net.network_id)
    buy_decimals = _decimals(container, buy, net.network_id)

    print(f"🔍 Quoting {amount} {sell} -> {buy} on {net.name}...")
    result = await container.aggregator.get_best_quote(net.network_id, sell_address, buy_address, amount, slippage)

    print(f"\n🏆 Best venue: {result.recommended_venue}" + (" (preferred)" if result.preference_applied else ""))
    print("=" * 60)
    for i, quote in enumerate(result.all_quotes, 1):
        marker = "→" if quote is result.best_quote else " "
        impact = f"{quote.price_impact_bps / 100:.2f}%" if quote.price_impact_bps is not None else "n/a"
        print(
            f"{marker} {i}. {quote.venue_id:<10} {format_units(quote.buy_amount, buy_decimals):>20} {buy}"
            f"  min {format_units(quote.min_buy_amount, buy_decimals)}  impact {impact}"
        )
        if quote.route:
            print(f"     route: {' / '.join(quote.route)}")
    print(
        f"\nSavings vs worst: {format_units(result.savings.absolute, buy_decimals)} {buy}"
        f" ({result.savings.percentage_of_worst}%)"
    )


async def cli_compare(container: Container, sell: str, buy: str, amount: int, slippage: str, networks: Optional[str]):
    """Best quote per network for a symbol pair"""
    network_ids = [container.chains.resolve(n).network_id for n in networks.split(",")] if networks else None
    print(f"🌐 Comparing {amount} {sell} -> {buy} across networks...")
    ranked = await container.comparator.compare_across_networks(sell, buy, amount, slippage, network_ids=network_ids)

    print("=" * 60)
    for i, nq in enumerate(ranked, 1):
        decimals = _decimals(container, buy, nq.network_id)
        print(f"{i}. {nq.network_name:<12} {format_units(nq.buy_amount, decimals):>20} {buy}  via {nq.result.recommended_venue}")
    print(f"\n🏆 Best network: {ranked[0].network_name}")


async def cli_price(container: Container, network: str, token: Optional[str]):
    """USD price of a token, or the network's reference token"""
    net = container.chains.resolve(network)
    address = container.resolver.resolve_asset_address(token, net.network_id) if token else None
    price = await container.prices.get_price(net.network_id, address)
    print(f"💲 {price.symbol or price.token} on {net.name}: ${price.price_usd} (source: {price.source})")


def cli_venues(container: Container):
    for venue in container.venues.describe():
        state = "✅" if venue["enabled"] else "⏸️ "
        print(f"{state} {venue['venue']:<10} {venue['name']:<16} networks: {venue['networks']}")


def cli_networks(container: Container):
    for network in container.chains.list_networks():
        venues = [p.venue_id for p in container.venues.venues_for(network.network_id)]
        print(f"{network.network_id:>6}  {network.name:<12} {network.native_symbol:<6} venues: {', '.join(venues) or '-'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="dexroute CLI")
    parser.add_argument("--log-level", default=None, help="Override log level")
    subparsers = parser.add_subparsers(dest="command")

    quote_parser = subparsers.add_parser("quote", help="Best quote on one network")
    quote_parser.add_argument("network", help="Chain id or name (e.g. base, pulsechain, 146)")
    quote_parser.add_argument("sell", help="Symbol or address to sell")
    quote_parser.add_argument("buy", help="Symbol or address to buy")
    quote_parser.add_argument("amount", type=int, help="Sell amount in smallest units")
    quote_parser.add_argument("--slippage", default=str(DEFAULT_SLIPPAGE), help="Slippage fraction (default: 0.005)")

    compare_parser = subparsers.add_parser("compare", help="Compare a symbol pair across networks")
    compare_parser.add_argument("sell", help="Symbol to sell")
    compare_parser.add_argument("buy", help="Symbol to buy")
    compare_parser.add_argument("amount", type=int, help="Sell amount in smallest units")
    compare_parser.add_argument("--slippage", default=str(DEFAULT_SLIPPAGE))
    compare_parser.add_argument("--networks", help="Comma-separated networks (default: configured set)")

    price_parser = subparsers.add_parser("price", help="USD price of a token")
    price_parser.add_argument("network", help="Chain id or name")
    price_parser.add_argument("token", nargs="?", help="Symbol or address (default: reference token)")

    subparsers.add_parser("venues", help="List venues")
    subparsers.add_parser("networks", help="List networks")

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(args.log_level or "WARNING")
    container = build_container()

    try:
        if args.command == "quote":
            await cli_quote(container, args.network, args.sell, args.buy, args.amount, args.slippage)
        elif args.command == "compare":
            await cli_compare(container, args.sell, args.buy, args.amount, args.slippage, args.networks)
        elif args.command == "price":
            await cli_price(container, args.network, args.token)
        elif args.command == "venues":
            cli_venues(container)
        elif args.command == "networks":
            cli_networks(container)
    except SwapError as exc:
        print(f"❌ {exc.kind.value}: {exc.message}")
        return 1
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
