"""
Package pricing command line.
Prices a request against the configured database without going through HTTP.
"""

import asyncio
import json
from datetime import date, datetime
from typing import Dict, Optional

import click

from .database import async_session_factory, close_db, init_db
from .pricing.addons import AddonSelection
from .pricing.engine import PriceRequest, PricingEngine
from .pricing.errors import PricingError
from .services.rule_repository import RuleRepository


def _parse_date(ctx, param, value) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


def _parse_pairs(ctx, param, values) -> Dict[str, int]:
    pairs: Dict[str, int] = {}
    for item in values:
        key, sep, count = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=COUNT, got {item!r}")
        try:
            pairs[key] = pairs.get(key, 0) + int(count)
        except ValueError:
            raise click.BadParameter(f"count must be an integer in {item!r}")
    return pairs


def _fail(e: PricingError):
    raise click.ClickException(json.dumps(e.to_dict(), default=str))


async def _with_engine(coro_factory):
    engine = PricingEngine(RuleRepository(async_session_factory))
    try:
        return await coro_factory(engine)
    finally:
        await close_db()


@click.group()
def cli():
    """Package price computation engine"""
    pass


@cli.command("init-db")
def init_db_command():
    """Create the pricing tables in the configured database"""
    async def _create():
        try:
            await init_db()
        finally:
            await close_db()

    asyncio.run(_create())
    click.echo("Pricing tables created")


@cli.command()
@click.argument("package_id")
@click.option("--date", "travel_date", required=True, callback=_parse_date, help="Travel date (YYYY-MM-DD)")
@click.option("--traveler", "travelers", multiple=True, callback=_parse_pairs,
              help="Travelers per tier as TIER=COUNT, repeatable")
@click.option("--addon", "addons", multiple=True, callback=_parse_pairs,
              help="Add-on selection as ADDON_ID=QUANTITY, repeatable")
@click.option("--promo", "promotion_code", default=None, help="Promotion code")
@click.option("--booking-date", callback=_parse_date, default=None, help="Booking date (defaults to today)")
def quote(package_id: str, travel_date: date, travelers: Dict[str, int], addons: Dict[str, int],
          promotion_code: Optional[str], booking_date: Optional[date]):
    """Price PACKAGE_ID for the given travel date and travelers"""
    try:
        request = PriceRequest(
            package_id=package_id,
            travel_date=travel_date,
            booking_date=booking_date,
            traveler_counts=travelers,
            addons=[AddonSelection(addon_id=k, quantity=v) for k, v in addons.items()],
            promotion_code=promotion_code,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    try:
        breakdown = asyncio.run(_with_engine(lambda engine: engine.quote(request)))
    except PricingError as e:
        _fail(e)
    click.echo(breakdown.model_dump_json(indent=2))


@cli.command()
@click.argument("package_id")
@click.option("--date", "travel_date", required=True, callback=_parse_date, help="Travel date (YYYY-MM-DD)")
@click.option("--travelers", type=click.IntRange(min=1), default=None, help="Party size to check")
def availability(package_id: str, travel_date: date, travelers: Optional[int]):
    """Check whether PACKAGE_ID can be booked on a date"""
    try:
        result = asyncio.run(
            _with_engine(lambda engine: engine.check_availability(package_id, travel_date, travelers))
        )
    except PricingError as e:
        _fail(e)
    click.echo(result.model_dump_json(indent=2))


if __name__ == '__main__':
    cli()
