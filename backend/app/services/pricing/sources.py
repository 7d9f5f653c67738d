# backend/app/services/pricing/sources.py
"""
Price sources used by the refresh job.

A source turns an instrument symbol into an INR price for the current cycle.
The only production implementation draws a uniform random price; a real
market-data feed would implement the same interface.

Usage:
    source = RandomPriceSource(min_price=1000, max_price=5000)
    price = source.quote("RELIANCE")
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal

from app.services.constants import PRICE_QUANTUM

logger = logging.getLogger(__name__)


class PriceSource(ABC):
    """
    Interface for anything that can quote an instrument.

    Implementations may raise any exception from quote(); the refresh job
    counts it as a failure for that instrument and moves on.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs (e.g. "random")."""
        pass

    @abstractmethod
    def quote(self, symbol: str) -> Decimal:
        """
        Current INR price for one instrument.

        Args:
            symbol: Upper-case instrument symbol

        Returns:
            Non-negative price
        """
        pass


class RandomPriceSource(PriceSource):
    """
    Uniform random prices in [min_price, max_price], rounded to paise.

    Attributes:
        min_price: Lower bound (INR)
        max_price: Upper bound (INR)
    """

    def __init__(
            self,
            min_price: float,
            max_price: float,
            rng: random.Random | None = None,
    ) -> None:
        if min_price < 0 or min_price >= max_price:
            raise ValueError(f"Invalid price range [{min_price}, {max_price}]")
        self.min_price = min_price
        self.max_price = max_price
        self._rng = rng or random.Random()

    @property
    def name(self) -> str:
        return "random"

    def quote(self, symbol: str) -> Decimal:
        raw = self._rng.uniform(self.min_price, self.max_price)
        return Decimal(str(raw)).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
