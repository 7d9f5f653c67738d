# backend/app/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging setup with correlation ID support
- context: Correlation ID context for requests and job cycles
- date_utils: UTC storage convention and local-day boundaries

Usage:
    from app.utils import setup_logging
    from app.utils import correlation_scope, get_correlation_id
    from app.utils.date_utils import local_day_start
"""

from app.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    correlation_scope,
)
from app.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "correlation_scope",
]
