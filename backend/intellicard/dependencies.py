"""
FastAPI Dependencies

The acting user's id comes from the X-User-Id header, set by the
authentication gateway in front of this service.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status


async def get_actor_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> int:
    """
    Resolve the acting user's id.

    Returns:
        int: The authenticated user id

    Raises:
        HTTPException: 401 if the header is missing or not a positive integer
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )

    try:
        actor_id = int(x_user_id)
    except ValueError:
        actor_id = 0

    if actor_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-User-Id header",
        )

    return actor_id


# Dependency that can be used in routers
CurrentActor = Depends(get_actor_id)
