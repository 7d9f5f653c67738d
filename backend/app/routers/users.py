# backend/app/routers/users.py
"""
User endpoints.

- POST /api/user - Register a user (409 if the email is taken)
"""

from fastapi import APIRouter, Depends, Request, status

from app.dependencies import get_reward_service
from app.middleware.rate_limit import limiter, RATE_LIMIT_WRITE
from app.schemas.users import UserCreate, UserResponse
from app.services.reward_service import RewardService

router = APIRouter(
    prefix="/api",
    tags=["Users"],
)


@router.post(
    "/user",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_user(
        request: Request,
        payload: UserCreate,
        service: RewardService = Depends(get_reward_service),
) -> UserResponse:
    """Raises **400** if name or email is missing, **409** if the email is taken."""
    user = service.create_user(name=payload.name, email=payload.email)
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
    )
