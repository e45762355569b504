"""
Pricing rules for parts orders, rental bookings and cleaning packages.

Pure functions over Decimal amounts; nothing here touches the database.
All money values are quantized to two decimal places (half-up).
"""
import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List

from .config import (
    CLEANING_DEFAULT_PRICE,
    CLEANING_PACKAGE_PRICES,
    PARTS_COMMISSION_RATE,
    PARTS_DELIVERY_CHARGE,
    PARTS_TAX_RATE,
    RENTAL_COMMISSION_RATE,
    RENTAL_INSURANCE_RATE,
)
from .errors import InvalidDateRange

CENT = Decimal("0.01")
SECONDS_PER_DAY = 24 * 60 * 60


def quantize_money(value) -> Decimal:
    """Round a money amount to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return quantize_money(Decimal(str(unit_price)) * quantity)


@dataclass(frozen=True)
class PricedLine:
    """A cart line after its part has been fetched and priced."""
    part_id: str
    part_name: str
    merchant_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class PartitionTotals:
    subtotal: Decimal
    platform_commission: Decimal
    tax_amount: Decimal
    delivery_charge: Decimal
    total_amount: Decimal


def partition_by_merchant(lines: Iterable[PricedLine]) -> Dict[str, List[PricedLine]]:
    """
    Group priced lines by owning merchant.

    Merchants appear in the order their first line appears in the cart, and
    lines keep their cart order within a merchant.
    """
    partitions: Dict[str, List[PricedLine]] = OrderedDict()
    for line in lines:
        partitions.setdefault(line.merchant_id, []).append(line)
    return partitions


def price_merchant_partition(lines: Iterable[PricedLine]) -> PartitionTotals:
    """
    Compute the settlement of one merchant's share of a checkout.

    The delivery charge is a flat amount per merchant order, not per line.
    """
    subtotal = quantize_money(sum((line.total_price for line in lines), Decimal("0")))
    commission = quantize_money(subtotal * PARTS_COMMISSION_RATE)
    tax = quantize_money(subtotal * PARTS_TAX_RATE)
    delivery = quantize_money(PARTS_DELIVERY_CHARGE)
    return PartitionTotals(
        subtotal=subtotal,
        platform_commission=commission,
        tax_amount=tax,
        delivery_charge=delivery,
        total_amount=subtotal + commission + tax + delivery,
    )


@dataclass(frozen=True)
class RentalQuote:
    total_days: int
    subtotal: Decimal
    platform_commission: Decimal
    insurance_fee: Decimal
    total_amount: Decimal


def rental_days(start: datetime, end: datetime) -> int:
    """Number of billable days, partial days rounded up."""
    days = math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)
    if days < 1:
        raise InvalidDateRange("End date must be at least one day after start date")
    return days


def price_rental(
    price_per_day,
    start: datetime,
    end: datetime,
    insurance_required: bool,
    insurance_eligible: bool,
) -> RentalQuote:
    """Quote a rental: 10% platform commission, 5% insurance when requested and eligible."""
    total_days = rental_days(start, end)
    subtotal = quantize_money(Decimal(str(price_per_day)) * total_days)
    commission = quantize_money(subtotal * RENTAL_COMMISSION_RATE)
    if insurance_required and insurance_eligible:
        insurance_fee = quantize_money(subtotal * RENTAL_INSURANCE_RATE)
    else:
        insurance_fee = quantize_money(0)
    return RentalQuote(
        total_days=total_days,
        subtotal=subtotal,
        platform_commission=commission,
        insurance_fee=insurance_fee,
        total_amount=subtotal + commission + insurance_fee,
    )


def price_cleaning_package(service_type: str, package_type: str) -> Decimal:
    """Fixed estimate for a cleaning or decoration package; unknown combinations fall back to the default."""
    prices = CLEANING_PACKAGE_PRICES.get(service_type, {})
    return quantize_money(prices.get(package_type, CLEANING_DEFAULT_PRICE))
