"""Region Price Localizer.

Converts an INR base price into a display price for the viewer's region.
Pure functions, no failure modes.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum


class Region(StrEnum):
    INDIA = "India"
    UAE = "UAE"
    GLOBAL = "Global"


@dataclass(frozen=True)
class RegionConfig:
    multiplier: float
    exchange_rate: float
    symbol: str


REGION_CONFIG: dict[Region, RegionConfig] = {
    Region.INDIA: RegionConfig(multiplier=1, exchange_rate=1, symbol="₹"),
    Region.UAE: RegionConfig(multiplier=1.3, exchange_rate=22.7, symbol="AED "),
    Region.GLOBAL: RegionConfig(multiplier=1.5, exchange_rate=83, symbol="$"),
}

DEFAULT_REGION = Region.INDIA


@dataclass(frozen=True)
class PriceDisplay:
    """Localized price ready for rendering."""

    symbol: str
    value: str  # thousands-grouped, "0" for free tiers
    amount: int


def resolve_region(region: Region | str | None) -> Region:
    """Coerce a stored region tag, falling back to the default region."""
    try:
        return Region(region)
    except ValueError:
        return DEFAULT_REGION


def localize_amount(base_price: int | float, region: Region | str | None) -> int:
    """Apply the region multiplier and exchange rate, rounding half away from zero.

    Decimal arithmetic on the float repr keeps .5 boundaries exact.
    """
    config = REGION_CONFIG[resolve_region(region)]
    raw = (
        Decimal(str(base_price))
        * Decimal(str(config.multiplier))
        / Decimal(str(config.exchange_rate))
    )
    # ROUND_HALF_UP in decimal rounds away from zero for negatives too
    return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_price(base_price: int | float, region: Region | str | None) -> PriceDisplay:
    """Format a base price for display in a region.

    Examples:
        format_price(1000, "Global") -> PriceDisplay(symbol="$", value="18", amount=18)
        format_price(0, "UAE")       -> PriceDisplay(symbol="AED ", value="0", amount=0)
    """
    config = REGION_CONFIG[resolve_region(region)]
    amount = localize_amount(base_price, region)
    value = "0" if amount == 0 else f"{amount:,}"
    return PriceDisplay(symbol=config.symbol, value=value, amount=amount)
