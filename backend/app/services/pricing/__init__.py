# backend/app/services/pricing/__init__.py
"""
Price sources and the background job that records their quotes.

    pricing/
    ├── sources.py      # PriceSource interface + RandomPriceSource
    └── refresh_job.py  # PriceRefreshJob + RefreshResult
"""

from app.services.pricing.refresh_job import PriceRefreshJob, RefreshResult
from app.services.pricing.sources import PriceSource, RandomPriceSource

__all__ = [
    "PriceRefreshJob",
    "RefreshResult",
    "PriceSource",
    "RandomPriceSource",
]
