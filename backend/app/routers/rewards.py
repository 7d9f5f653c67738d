# backend/app/routers/rewards.py
"""
Reward endpoints.

Records rewards and answers the valuation queries for one user:
- POST /api/reward                    - Record a reward
- GET  /api/today-stocks/{user_id}    - Rewards granted today
- GET  /api/historical-inr/{user_id}  - INR value per past day
- GET  /api/stats/{user_id}           - Shares today + current portfolio value
- GET  /api/portfolio/{user_id}       - Holdings at latest prices

Endpoints are thin: validation, lookups and error mapping happen in the
RewardService and the global exception handlers.
"""

from fastapi import APIRouter, Depends, Request, status

from app.dependencies import get_reward_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_WRITE
from app.schemas.rewards import (
    RewardCreate,
    RewardResponse,
    TodayStocksResponse,
    HistoricalReward,
    HistoricalInrResponse,
    SharesToday,
    StatsResponse,
    PortfolioHolding,
    PortfolioResponse,
)
from app.services.reward_service import RewardService
from app.services.valuation import (
    DailyValuation,
    HoldingValuation,
    RewardView,
    SymbolShares,
)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/api",
    tags=["Rewards"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_reward(reward: RewardView) -> RewardResponse:
    return RewardResponse(
        id=reward.id,
        user_id=reward.user_id,
        stock_symbol=reward.symbol,
        shares=reward.shares,
        rewarded_at=reward.rewarded_at,
    )


def _map_daily_value(day: DailyValuation) -> HistoricalReward:
    return HistoricalReward(date=day.date, total_value=day.total_value, reward_count=day.reward_count)


def _map_shares_today(row: SymbolShares) -> SharesToday:
    return SharesToday(stock_symbol=row.symbol, total_shares=row.total_shares)


def _map_holding(holding: HoldingValuation) -> PortfolioHolding:
    return PortfolioHolding(
        stock_symbol=holding.symbol,
        total_shares=holding.total_shares,
        current_price_inr=holding.current_price_inr,
        current_value_inr=holding.current_value_inr,
        price_recorded_at=holding.price_recorded_at,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/reward",
    response_model=RewardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a reward",
    response_description="The recorded reward",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_reward(
        request: Request,
        payload: RewardCreate,
        service: RewardService = Depends(get_reward_service),
) -> RewardResponse:
    """
    Record that a user was granted `shares` of `stockSymbol`.

    Raises **400** if a field is missing or shares is not positive,
    **404** if the stock or user does not exist.
    """
    reward = service.create_reward(
        user_id=payload.user_id,
        symbol=payload.stock_symbol,
        shares=payload.shares,
    )
    return _map_reward(reward)


@router.get(
    "/today-stocks/{user_id}",
    response_model=TodayStocksResponse,
    summary="Rewards granted today",
)
def get_today_stocks(
        user_id: int,
        service: RewardService = Depends(get_reward_service),
) -> TodayStocksResponse:
    """Rewards since local midnight, newest first."""
    rewards = service.todays_rewards(user_id)
    return TodayStocksResponse(stocks=[_map_reward(r) for r in rewards])


@router.get(
    "/historical-inr/{user_id}",
    response_model=HistoricalInrResponse,
    summary="INR value of past rewards per day",
)
def get_historical_inr(
        user_id: int,
        service: RewardService = Depends(get_reward_service),
) -> HistoricalInrResponse:
    """
    One entry per past day with rewards (today excluded), ascending.

    Each reward is valued at the price in effect when it was granted.
    """
    series = service.historical_valuation(user_id)
    return HistoricalInrResponse(
        user_id=user_id,
        historical_rewards=[_map_daily_value(day) for day in series],
    )


@router.get(
    "/stats/{user_id}",
    response_model=StatsResponse,
    summary="Today's shares and current portfolio value",
)
def get_stats(
        user_id: int,
        service: RewardService = Depends(get_reward_service),
) -> StatsResponse:
    stats = service.current_stats(user_id)
    return StatsResponse(
        shares_rewarded_today=[_map_shares_today(row) for row in stats.shares_rewarded_today],
        current_portfolio_value=stats.current_portfolio_value,
    )


@router.get(
    "/portfolio/{user_id}",
    response_model=PortfolioResponse,
    summary="Holdings at latest prices",
)
def get_portfolio(
        user_id: int,
        service: RewardService = Depends(get_reward_service),
) -> PortfolioResponse:
    """Holdings per symbol; unpriced instruments are valued at 0."""
    snapshot = service.portfolio_snapshot(user_id)
    return PortfolioResponse(
        portfolio=[_map_holding(h) for h in snapshot.holdings],
        total_portfolio_value=snapshot.total_portfolio_value,
    )
