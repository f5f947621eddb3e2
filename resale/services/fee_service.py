"""Buyer markup and seller payout split.

All amounts are integer minor currency units (pence/cents). The markup is the
marketplace's application fee; the seller's account receives the rest.

    flat        markup = flat_fee_cents
    percentage  markup = round_half_up(price_cents * rate + fixed_cents)
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

FEE_POLICIES = ("flat", "percentage")


def to_minor_units(price: float) -> int:
    return int((Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class FeeQuote:
    price_cents: int
    markup_cents: int

    @property
    def total_cents(self) -> int:
        return self.price_cents + self.markup_cents

    @property
    def seller_cents(self) -> int:
        return self.total_cents - self.markup_cents


@dataclass(frozen=True)
class FeePolicy:
    mode: str = "percentage"
    flat_fee_cents: int = 100
    rate: Decimal = Decimal("0.014")
    fixed_cents: int = 20

    def __post_init__(self):
        if self.mode not in FEE_POLICIES:
            raise ValueError(f"Unknown fee policy {self.mode!r}; expected one of {FEE_POLICIES}")

    @classmethod
    def from_settings(cls, cfg) -> "FeePolicy":
        return cls(
            mode=cfg.fee_policy,
            flat_fee_cents=cfg.flat_fee_cents,
            rate=Decimal(str(cfg.percentage_fee_rate)),
            fixed_cents=cfg.fixed_fee_cents,
        )

    def markup_cents(self, price_cents: int) -> int:
        if self.mode == "flat":
            return self.flat_fee_cents
        markup = Decimal(price_cents) * self.rate + Decimal(self.fixed_cents)
        return int(markup.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def quote(self, price: float) -> FeeQuote:
        price_cents = to_minor_units(price)
        return FeeQuote(price_cents=price_cents, markup_cents=self.markup_cents(price_cents))
