"""Request-scoped dependencies shared by the routers."""

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: str = Header(None)) -> int:
    """Caller identity, set by the auth gateway in front of this service"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid user id")
    return user_id
