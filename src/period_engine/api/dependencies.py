"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from period_engine.database import init_db
from period_engine.services.authorization import Actor


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Routes commit explicitly; anything left uncommitted is rolled back on close.
    """
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header} format",
        )


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
    x_center_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the acting user from identity headers set by the gateway."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID and X-User-Role headers are required",
        )
    return Actor(
        user_id=_parse_uuid(x_user_id, "X-User-ID"),
        role=x_user_role,
        center_id=_parse_uuid(x_center_id, "X-Center-ID") if x_center_id else None,
    )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
