# backend/app/services/valuation/__init__.py
"""
Valuation Service Package.

Usage:
    from app.services.valuation import ValuationService, ValuationConfig

    service = ValuationService(LedgerStore(db), PriceStore(db), ValuationConfig())
    series = service.historical_valuation(user_id=1)

Architecture:
    valuation/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Internal data classes
    ├── calculators.py    # Pure calculators (no I/O)
    └── service.py        # ValuationService (orchestrator, does the reads)

Data Flow:
    Ledger entries + PriceTimelines  → DailyValueCalculator → [DailyValuation]
    Ledger entries + latest prices   → HoldingsCalculator   → PortfolioSnapshot
"""

from app.services.valuation.calculators import DailyValueCalculator, HoldingsCalculator
from app.services.valuation.service import ValuationService
from app.services.valuation.types import (
    ValuationConfig,
    RewardView,
    DailyValuation,
    SymbolShares,
    CurrentStats,
    HoldingValuation,
    PortfolioSnapshot,
)

__all__ = [
    "ValuationService",
    "ValuationConfig",
    "RewardView",
    "DailyValuation",
    "SymbolShares",
    "CurrentStats",
    "HoldingValuation",
    "PortfolioSnapshot",
    "DailyValueCalculator",
    "HoldingsCalculator",
]
