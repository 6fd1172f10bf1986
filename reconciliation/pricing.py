"""Integer pricing rules and the fixed-point display convention."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


def price_per_unit(total_price: int, total_units: int) -> int:
    """Truncating price of one unit; 0 when the sale has no units."""

    if total_units <= 0:
        return 0
    return total_price // total_units


def cost_for_units(total_price: int, total_units: int, amount: int) -> int:
    """Cost charged for ``amount`` units.

    Truncates per unit first and multiplies afterwards, matching what the
    on-ledger purchase entry point charges. See ``rounding_shortfall``.
    """

    if amount < 0:
        raise ValueError("amount must be non-negative")
    return price_per_unit(total_price, total_units) * amount


def rounding_shortfall(total_price: int, total_units: int, amount: int) -> int:
    """How much ``cost_for_units`` under-charges versus proportional pricing."""

    if total_units <= 0 or amount <= 0:
        return 0
    proportional = (total_price * amount) // total_units
    return proportional - cost_for_units(total_price, total_units, amount)


@dataclass(frozen=True)
class PurchaseQuote:
    amount: int
    price_per_unit: int
    cost: int
    shortfall: int
    remaining: int | None

    @property
    def exceeds_remaining(self) -> bool:
        return self.remaining is not None and self.amount > self.remaining


def quote_purchase(total_price: int, total_units: int, amount: int, *, remaining: int | None = None) -> PurchaseQuote:
    if amount <= 0:
        raise ValueError("amount must be > 0")
    return PurchaseQuote(
        amount=amount,
        price_per_unit=price_per_unit(total_price, total_units),
        cost=cost_for_units(total_price, total_units, amount),
        shortfall=rounding_shortfall(total_price, total_units, amount),
        remaining=remaining,
    )


def format_amount(amount: int, *, decimals: int = 6, symbol: str = "$") -> str:
    """Render sub-unit integers as currency, e.g. ``1234500000 -> "$1,234.50"``.

    At least two and at most ``decimals`` fraction digits are shown.
    """

    sign = "-" if amount < 0 else ""
    value = Decimal(abs(int(amount))).scaleb(-decimals)
    text = f"{value:,.{max(decimals, 0)}f}"
    whole, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0").ljust(2, "0")
    return f"{sign}{symbol}{whole}.{fraction}"


__all__ = [
    "PurchaseQuote",
    "cost_for_units",
    "format_amount",
    "price_per_unit",
    "quote_purchase",
    "rounding_shortfall",
]
