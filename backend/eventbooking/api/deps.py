"""
Request dependencies: authenticated identity and the process-wide
components built by the application lifespan.
"""

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from eventbooking.core.exceptions import Forbidden
from eventbooking.core.logging import get_logger
from eventbooking.core.security import decode_access_token
from eventbooking.db.session import get_db
from eventbooking.jobs.queue import JobQueue
from eventbooking.models.user import User, UserRole
from eventbooking.services.seat_ledger import SeatLedger

logger = get_logger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


def get_seat_ledger(request: Request) -> SeatLedger:
    return request.app.state.seat_ledger


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        logger.info("auth_token_rejected")
        raise unauthorized

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise unauthorized

    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def require_role(role: UserRole) -> Callable:
    """Dependency factory restricting an endpoint to one role."""

    async def role_dependency(user: User = Depends(get_current_user)) -> User:
        if user.role != role.value:
            raise Forbidden(f"This action requires the {role.value} role")
        return user

    return role_dependency


require_customer = require_role(UserRole.CUSTOMER)
require_organizer = require_role(UserRole.ORGANIZER)
