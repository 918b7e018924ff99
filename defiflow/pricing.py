"""Mock swap pricing.

Prices drift by a bounded random shock on every quote and the price impact
grows linearly with trade size relative to the pair's average liquidity,
capped at ``max_price_impact_pct``. All arithmetic is done in ``Decimal`` so
quotes are exact for a given set of random draws.
"""

from __future__ import annotations

import logging
import math
import random
from decimal import Decimal
from typing import Protocol

from .config import app_config
from .errors import IdenticalMintError, InvalidAmountError
from .models import Quote

logger = logging.getLogger(__name__)

DEFAULT_PRICE = Decimal("1.0")
DEFAULT_LIQUIDITY = Decimal("100000")


class PriceNoise(Protocol):
    def price_shock(self) -> float: ...

    def liquidity_factor(self) -> float: ...


class MarketNoise:
    """Random draws used by the pricing engine, backed by an injectable RNG."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def price_shock(self) -> float:
        return self._rng.uniform(-1.0, 1.0)

    def liquidity_factor(self) -> float:
        return 1.0


class StaticNoise:
    def __init__(self, shock: float = 0.0, liquidity: float = 1.0) -> None:
        self.shock = shock
        self.liquidity = liquidity

    def price_shock(self) -> float:
        return self.shock

    def liquidity_factor(self) -> float:
        return self.liquidity


def _dec(value: float | int | str) -> Decimal:
    return Decimal(str(value))


class MockPricingEngine:
    def __init__(
        self,
        market: dict[str, dict[str, float]] | None = None,
        noise: PriceNoise | None = None,
        *,
        volatility: float | None = None,
        fee_rate: float | None = None,
        max_price_impact_pct: float | None = None,
        default_slippage_bps: int | None = None,
    ) -> None:
        settings = app_config.pricing_settings()
        self.market = market if market is not None else app_config.market_table()
        self.noise = noise or MarketNoise()
        self.volatility = _dec(settings["volatility"] if volatility is None else volatility)
        self.fee_rate = _dec(settings["fee_rate"] if fee_rate is None else fee_rate)
        self.max_price_impact_pct = _dec(
            settings["max_price_impact_pct"] if max_price_impact_pct is None else max_price_impact_pct
        )
        self.default_slippage_bps = int(
            settings["default_slippage_bps"] if default_slippage_bps is None else default_slippage_bps
        )

    def base_price(self, mint: str) -> Decimal:
        price = self.market.get(mint, {}).get("price")
        if not price or price <= 0:
            return DEFAULT_PRICE
        return _dec(price)

    def liquidity(self, mint: str) -> Decimal:
        liquidity = self.market.get(mint, {}).get("liquidity")
        if not liquidity or liquidity <= 0:
            return DEFAULT_LIQUIDITY
        return _dec(liquidity)

    def current_price(self, mint: str) -> Decimal:
        shock = _dec(self.noise.price_shock())
        return self.base_price(mint) * (1 + shock * self.volatility)

    def price_impact_pct(self, input_mint: str, output_mint: str, amount_in: int) -> Decimal:
        avg_liquidity = (self.liquidity(input_mint) + self.liquidity(output_mint)) / 2
        impact = Decimal(amount_in) / avg_liquidity * 100 * _dec(self.noise.liquidity_factor())
        return min(max(impact, Decimal(0)), self.max_price_impact_pct)

    def quote(
        self,
        input_mint: str,
        output_mint: str,
        amount_in: int,
        slippage_bps: int | None = None,
    ) -> Quote:
        if isinstance(amount_in, bool) or not isinstance(amount_in, int):
            raise InvalidAmountError(f"Amount must be an integer number of base units, got {amount_in!r}")
        if amount_in <= 0:
            raise InvalidAmountError("Amount must be greater than 0")
        if input_mint == output_mint:
            raise IdenticalMintError("Input and output tokens must be different")
        bps = self.default_slippage_bps if slippage_bps is None else slippage_bps
        if not 0 <= bps <= 10_000:
            raise InvalidAmountError(f"Slippage must be between 0 and 10000 bps, got {bps}")

        price_in = self.current_price(input_mint)
        price_out = self.current_price(output_mint)

        raw_out = Decimal(amount_in) * price_in / price_out
        fee = raw_out * self.fee_rate
        after_fee = raw_out - fee

        impact_pct = self.price_impact_pct(input_mint, output_mint, amount_in)
        out_amount = max(math.floor(after_fee - after_fee * impact_pct / 100), 0)
        minimum_out = math.floor(Decimal(out_amount) * (1 - Decimal(bps) / 10_000))

        quote = Quote(
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=amount_in,
            out_amount=out_amount,
            price_impact_pct=float(impact_pct),
            fee_amount=math.floor(fee),
            minimum_out_amount=minimum_out,
            slippage_bps=bps,
        )
        logger.info(
            "Mock quote %s -> %s: in=%d out=%d impact=%.2f%% fee=%d",
            input_mint,
            output_mint,
            amount_in,
            out_amount,
            quote.price_impact_pct,
            quote.fee_amount,
        )
        return quote
