"""Three-way commission split between supplier, hotel and platform."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_COMMISSION_RATES = (80, 12, 8)


@dataclass(frozen=True)
class CommissionSplit:
    supplier_amount: int
    hotel_amount: int
    platform_amount: int

    @property
    def total(self):
        return self.supplier_amount + self.hotel_amount + self.platform_amount


def _rates_from(rates):
    if rates is None:
        return DEFAULT_COMMISSION_RATES
    if isinstance(rates, dict):
        return (
            rates.get('supplier', rates.get('commission_supplier')),
            rates.get('hotel', rates.get('commission_hotel')),
            rates.get('platform', rates.get('commission_platform')),
        )
    if hasattr(rates, 'commission_supplier'):
        return (rates.commission_supplier, rates.commission_hotel, rates.commission_platform)
    return tuple(rates)


def _share(total_cents: int, rate) -> int:
    return int((Decimal(total_cents) * Decimal(rate) / 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def split_commission(total_cents: int, rates=None) -> CommissionSplit:
    """
    Split ``total_cents`` by percentage rates.

    ``rates`` may be a Distribution, a mapping or a (supplier, hotel, platform)
    tuple. Each share is rounded half-up on its own and whatever the rounding
    leaves over, positive or negative, is added to the platform share, so the
    three amounts always sum to ``total_cents``.
    """
    supplier_rate, hotel_rate, platform_rate = _rates_from(rates)

    supplier = _share(total_cents, supplier_rate)
    hotel = _share(total_cents, hotel_rate)
    platform = _share(total_cents, platform_rate)

    remainder = total_cents - (supplier + hotel + platform)

    return CommissionSplit(
        supplier_amount=supplier,
        hotel_amount=hotel,
        platform_amount=platform + remainder,
    )
