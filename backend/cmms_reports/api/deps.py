"""
API dependencies for caller identity and common operations.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from cmms_reports.core.config import get_settings
from cmms_reports.core.database import get_db
from cmms_reports.models.user import User

settings = get_settings()


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    user_id: Optional[str] = Header(None, alias=settings.USER_ID_HEADER),
) -> User:
    """
    Resolve the calling user from the identity header set by the gateway.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not identify the calling user",
    )

    if not user_id or not user_id.strip().isdigit():
        raise credentials_exception

    user = await db.get(User, int(user_id))
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


# Common query parameters
class PaginationParams:
    """Common pagination parameters."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
        ),
    ):
        self.page = page
        self.page_size = page_size
        self.offset = (page - 1) * page_size


# Type aliases for cleaner signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
DBSession = Annotated[AsyncSession, Depends(get_db)]
Pagination = Annotated[PaginationParams, Depends()]
