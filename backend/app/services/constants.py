# backend/app/services/constants.py
"""
Centralized business constants for the Stock Rewards Ledger.

Tunables that operators may want to change live in app.config (env vars);
this module holds fixed values shared across services.

Usage:
    from app.services.constants import MONEY_QUANTUM, RATE_LIMIT_WRITE
"""

from decimal import Decimal


# =============================================================================
# MONETARY PRECISION
# =============================================================================

# INR amounts are reported with 2 decimal places (paise)
MONEY_QUANTUM: Decimal = Decimal("0.01")

# Synthetic prices are generated with the same precision as reported amounts
PRICE_QUANTUM: Decimal = Decimal("0.01")

ZERO: Decimal = Decimal("0")

# reward_entries.shares is NUMERIC(18, 8): 8 fractional and 10 integer digits
SHARES_QUANTUM: Decimal = Decimal("0.00000001")
SHARES_MAX_INTEGER_DIGITS: int = 10

# price_observations.price is NUMERIC(18, 4)
PRICE_MAX_INTEGER_DIGITS: int = 14


# =============================================================================
# PRICE REFRESH
# =============================================================================

# Store writes retried on StoreError before an instrument is skipped for the cycle
PRICE_WRITE_MAX_ATTEMPTS: int = 3

# Exponential backoff between write attempts (seconds)
PRICE_WRITE_RETRY_MULTIPLIER: float = 0.5
PRICE_WRITE_RETRY_MAX_WAIT: float = 4.0

# Symbols created by scripts/seed_instruments.py
DEFAULT_INSTRUMENT_SYMBOLS: tuple[str, ...] = (
    "RELIANCE",
    "TCS",
    "INFY",
    "HDFCBANK",
    "ICICIBANK",
)


# =============================================================================
# RATE LIMITS (slowapi format: "<count>/<period>")
# =============================================================================

RATE_LIMIT_DEFAULT: str = "120/minute"

# Reward creation and user registration
RATE_LIMIT_WRITE: str = "30/minute"

# Load balancer probes call this frequently
RATE_LIMIT_HEALTH: str = "300/minute"
